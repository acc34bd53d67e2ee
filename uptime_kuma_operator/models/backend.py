"""Pydantic models for the Uptime Kuma REST API payloads."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..utils.constants import DEFAULT_TAG_COLOR


class BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Tag(BackendModel):
    """A tag in Uptime Kuma."""

    id: Optional[int] = None
    name: str
    color: str = DEFAULT_TAG_COLOR


class MonitorTagLink(BackendModel):
    """A tag assigned to a monitor, as returned with the monitor."""

    tag_id: int
    value: Optional[str] = ""
    name: Optional[str] = None
    color: Optional[str] = None


class Monitor(BackendModel):
    """A monitor in Uptime Kuma."""

    id: Optional[int] = None
    name: str
    type: str
    url: Optional[str] = None
    hostname: Optional[str] = None
    port: Optional[int] = None
    interval: int
    retry_interval: Optional[int] = Field(None, alias="retryInterval")
    max_retries: Optional[int] = Field(None, alias="maxretries")
    description: Optional[str] = None
    active: Optional[bool] = None
    parent: Optional[int] = None
    tags: List[MonitorTagLink] = Field(default_factory=list)
    method: Optional[str] = None
    body: Optional[str] = None
    http_headers: Optional[Dict[str, Any]] = Field(None, alias="httpHeaders")
    accepted_status_codes: Optional[List[str]] = Field(None, alias="accepted_statuscodes")

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.pop("tags", None)
        # An explicit null detaches the monitor from a previous group.
        payload["parent"] = self.parent
        return payload


class Group(BackendModel):
    """A monitor group in Uptime Kuma."""

    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    weight: Optional[int] = None
    parent: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        # An explicit null moves the group back to the top level.
        payload["parent"] = self.parent
        return payload


class Heartbeat(BackendModel):
    time: Optional[str] = None
    status: Optional[int] = None
    msg: Optional[str] = None
    ping: Optional[float] = None


class MonitorStatusReport(BackendModel):
    """Status and statistics of a monitor."""

    status: str = "unknown"
    uptime24h: Optional[float] = None
    uptime30d: Optional[float] = None
    uptime1y: Optional[float] = None
    avgPing24h: Optional[float] = None
    latestHeartbeat: Optional[Heartbeat] = None


class HealthReport(BackendModel):
    ok: bool = True
    status: Optional[str] = None
    version: Optional[str] = None
    database: Optional[str] = None
