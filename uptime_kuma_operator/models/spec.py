"""Pydantic models for the custom resource specifications."""
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.constants import DEFAULT_TAG_COLOR


class _SpecModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_manifest(self) -> Dict:
        """Render the spec the way it is stored on the resource."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SecretReference(_SpecModel):
    """Reference to the Secret holding the API key."""

    name: str = Field(..., description="Name of the Secret")
    key: Optional[str] = Field(None, description="Key inside the Secret, defaults to api-key")
    namespace: Optional[str] = Field(None, description="Namespace of the Secret, defaults to the Config's")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Secret name cannot be empty')
        return v.strip()

    @field_validator('key', 'namespace', mode='before')
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)


class UptimeKumaConfigSpec(_SpecModel):
    """Specification for UptimeKumaConfig custom resource."""

    api_url: str = Field(..., alias="apiUrl", description="Base URL of the Uptime Kuma REST API")
    api_key_secret: SecretReference = Field(..., alias="apiKeySecret")
    insecure_skip_verify: bool = Field(False, alias="insecureSkipVerify")
    timeout: int = Field(0, description="Request timeout in seconds, 0 means the default")

    @field_validator('api_url')
    @classmethod
    def validate_url(cls, v):
        if not (v.startswith('http://') or v.startswith('https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v < 0:
            raise ValueError('Timeout cannot be negative')
        return v


class UptimeKumaGroupSpec(_SpecModel):
    """Specification for UptimeKumaGroup custom resource."""

    group_name: Optional[str] = Field(None, alias="groupName", description="Display name, defaults to the resource name")
    description: Optional[str] = Field(None)
    weight: int = Field(0, description="Sort weight")
    parent_group: Optional[str] = Field(None, alias="parentGroup", description="Name of the parent UptimeKumaGroup")
    config_ref: Optional[str] = Field(None, alias="uptimeKumaConfigRef")

    @field_validator('group_name', 'parent_group', 'config_ref', mode='before')
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)


class MonitorType(str, Enum):
    HTTP = "http"
    KEYWORD = "keyword"
    JSON_QUERY = "json-query"
    PORT = "port"
    PING = "ping"
    DNS = "dns"
    PUSH = "push"
    DOCKER = "docker"
    GRPC_KEYWORD = "grpc-keyword"
    REAL_BROWSER = "real-browser"
    MQTT = "mqtt"
    SQLSERVER = "sqlserver"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    REDIS = "redis"
    RADIUS = "radius"
    TAILSCALE_PING = "tailscale-ping"
    GAMEDIG = "gamedig"
    GROUP = "group"


HTTP_FAMILY = frozenset({MonitorType.HTTP, MonitorType.KEYWORD, MonitorType.JSON_QUERY, MonitorType.REAL_BROWSER})


class MonitorTag(_SpecModel):
    """A tag attached to a monitor."""

    name: str = Field(..., description="Tag name, matched exactly against existing tags")
    value: str = Field("", description="Value stored on the monitor/tag link")
    color: str = Field(DEFAULT_TAG_COLOR, description="Colour used when the tag has to be created")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Tag name cannot be empty')
        return v.strip()


class HttpOptions(_SpecModel):
    """Options only honoured by HTTP family monitors."""

    method: Optional[str] = Field(None)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = Field(None)
    accepted_status_codes: List[str] = Field(default_factory=list, alias="acceptedStatusCodes")


class UptimeKumaMonitorSpec(_SpecModel):
    """Specification for UptimeKumaMonitor custom resource."""

    monitor_type: MonitorType = Field(MonitorType.HTTP, alias="type")
    name: Optional[str] = Field(None, description="Display name, defaults to the resource name")
    url: Optional[str] = Field(None)
    hostname: Optional[str] = Field(None)
    port: Optional[int] = Field(None)
    interval: int = Field(0, description="Check interval in seconds, 0 means the default")
    retry_interval: int = Field(0, alias="retryInterval")
    max_retries: int = Field(0, alias="maxRetries")
    description: Optional[str] = Field(None)
    active: bool = Field(True)
    group: Optional[str] = Field(None, description="Name of the UptimeKumaGroup this monitor belongs to")
    tags: List[MonitorTag] = Field(default_factory=list)
    config_ref: Optional[str] = Field(None, alias="uptimeKumaConfigRef")
    http: Optional[HttpOptions] = Field(None)

    @field_validator('name', 'url', 'hostname', 'group', 'config_ref', mode='before')
    @classmethod
    def blank_is_unset(cls, v):
        return _blank_to_none(v)

    @field_validator('interval', 'retry_interval', 'max_retries')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('Value cannot be negative')
        return v

    @model_validator(mode='after')
    def validate_target(self):
        if self.is_http_family() and not self.url:
            raise ValueError(f'url is required for {self.monitor_type.value} monitors')
        if self.monitor_type == MonitorType.PORT and not (self.hostname and self.port):
            raise ValueError('hostname and port are required for port monitors')
        if self.monitor_type in (MonitorType.PING, MonitorType.DNS) and not self.hostname:
            raise ValueError(f'hostname is required for {self.monitor_type.value} monitors')
        return self

    def is_http_family(self) -> bool:
        return self.monitor_type in HTTP_FAMILY
