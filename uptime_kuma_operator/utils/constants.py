"""Names shared by the reconcilers and the kopf wiring."""

API_GROUP = "monitoring.uptimekuma.io"
API_VERSION = "v1alpha1"

CONFIG_PLURAL = "uptimekumaconfigs"
GROUP_PLURAL = "uptimekumagroups"
MONITOR_PLURAL = "uptimekumamonitors"

MONITOR_KIND = "UptimeKumaMonitor"

FINALIZER = f"{API_GROUP}/finalizer"

# Conditions
CONDITION_READY = "Ready"

REASON_CONNECTION_SUCCESS = "ConnectionSuccess"
REASON_CONNECTION_FAILED = "ConnectionFailed"
REASON_SECRET_NOT_FOUND = "SecretNotFound"
REASON_INVALID_SECRET = "InvalidSecret"
REASON_INVALID_SPEC = "InvalidSpec"
REASON_GROUP_SYNCED = "GroupSynced"
REASON_GROUP_SYNC_FAILED = "GroupSyncFailed"
REASON_MONITOR_SYNCED = "MonitorSynced"
REASON_MONITOR_SYNC_FAILED = "MonitorSyncFailed"
REASON_CIRCULAR_REFERENCE = "CircularReference"

# Events
EVENT_ORPHANED = "OrphanedExternalObject"
EVENT_MONITOR_CREATED = "DiscoveredMonitorCreated"
EVENT_MONITOR_UPDATED = "DiscoveredMonitorUpdated"
EVENT_MONITOR_DELETED = "DiscoveredMonitorDeleted"

# Service discovery annotations
ANNOTATION_ENABLED = f"{API_GROUP}/enabled"
ANNOTATION_TYPE = f"{API_GROUP}/type"
ANNOTATION_PATH = f"{API_GROUP}/path"
ANNOTATION_PORT = f"{API_GROUP}/port"
ANNOTATION_INTERVAL = f"{API_GROUP}/interval"
ANNOTATION_GROUP = f"{API_GROUP}/group"
ANNOTATION_CONFIG = f"{API_GROUP}/config"

DEFAULT_DISCOVERY_TYPE = "http"
DEFAULT_DISCOVERY_PATH = "/"
DEFAULT_DISCOVERY_PORT = "http"

LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_SOURCE = f"{API_GROUP}/source"
MANAGED_BY = "uptime-kuma-operator"
SOURCE_SERVICE_DISCOVERY = "service-discovery"

DEFAULT_TAG_COLOR = "#4CAF50"
