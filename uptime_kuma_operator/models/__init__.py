"""Data models for the Uptime Kuma Operator."""
from .spec import (
    HTTP_FAMILY,
    HttpOptions,
    MonitorTag,
    MonitorType,
    SecretReference,
    UptimeKumaConfigSpec,
    UptimeKumaGroupSpec,
    UptimeKumaMonitorSpec,
)
from .status import (
    Condition,
    ResourceStatus,
    UptimeKumaConfigStatus,
    UptimeKumaGroupStatus,
    UptimeKumaMonitorStatus,
    UptimeStats,
)

__all__ = [
    "HTTP_FAMILY",
    "HttpOptions",
    "MonitorTag",
    "MonitorType",
    "SecretReference",
    "UptimeKumaConfigSpec",
    "UptimeKumaGroupSpec",
    "UptimeKumaMonitorSpec",
    "Condition",
    "ResourceStatus",
    "UptimeKumaConfigStatus",
    "UptimeKumaGroupStatus",
    "UptimeKumaMonitorStatus",
    "UptimeStats",
]
