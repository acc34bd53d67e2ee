"""Configuration management for the operator."""
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Configuration settings for the Uptime Kuma Operator."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Kubernetes Configuration
    kubeconfig: Optional[str] = Field(default=None)
    clusterwide: bool = Field(default=True)
    namespaces: List[str] = Field(default_factory=list)

    # Operator Configuration
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="operator.log")
    max_workers: int = Field(default=10)
    watch_connect_timeout: int = Field(default=60)
    watch_server_timeout: int = Field(default=600)

    # Reconciliation cadence, in seconds
    drift_interval: float = Field(default=300.0)
    retry_delay: float = Field(default=60.0)

    # Resource defaults
    default_config_name: str = Field(default="uptime-kuma")
    default_secret_key: str = Field(default="api-key")
    default_timeout: int = Field(default=30)
    default_monitor_interval: int = Field(default=60)
    max_group_depth: int = Field(default=10)
