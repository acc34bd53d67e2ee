"""Derives UptimeKumaMonitor resources from annotated Services."""
from typing import Any, Dict, List, Mapping, Optional

import kopf
from loguru import logger
from pydantic import ValidationError

from ..clients import ResourceStore
from ..models import HTTP_FAMILY, MonitorTag, UptimeKumaMonitorSpec
from ..utils import Config, build_monitor_name, get_annotation, parse_int
from ..utils.constants import (
    ANNOTATION_CONFIG,
    ANNOTATION_ENABLED,
    ANNOTATION_GROUP,
    ANNOTATION_INTERVAL,
    ANNOTATION_PATH,
    ANNOTATION_PORT,
    ANNOTATION_TYPE,
    API_GROUP,
    API_VERSION,
    DEFAULT_DISCOVERY_PATH,
    DEFAULT_DISCOVERY_PORT,
    DEFAULT_DISCOVERY_TYPE,
    EVENT_MONITOR_CREATED,
    EVENT_MONITOR_DELETED,
    EVENT_MONITOR_UPDATED,
    LABEL_MANAGED_BY,
    LABEL_SOURCE,
    MANAGED_BY,
    MONITOR_KIND,
    SOURCE_SERVICE_DISCOVERY,
)
from ..utils.errors import DiscoveryError, OperatorError
from .base import Event, ReconcileResult

# Fields whose change makes a derived monitor worth rewriting.
COMPARED_FIELDS = ("monitor_type", "url", "interval", "group", "active", "config_ref")


def monitor_spec_differs(current: UptimeKumaMonitorSpec, desired: UptimeKumaMonitorSpec) -> bool:
    return any(getattr(current, field) != getattr(desired, field) for field in COMPARED_FIELDS)


class DiscoveryReconciler:
    """Keeps one UptimeKumaMonitor per opted-in Service."""

    def __init__(self, store: ResourceStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    def reconcile(self, body: Mapping[str, Any]) -> ReconcileResult:
        meta = body.get('metadata') or {}
        namespace = meta['namespace']
        name = meta['name']
        monitor_name = build_monitor_name(name)

        try:
            if get_annotation(meta.get('annotations'), ANNOTATION_ENABLED) != "true":
                return self.ensure_deleted(namespace, monitor_name, meta.get('uid'))

            spec = self.build_monitor_spec(body)
            return self.ensure_monitor(body, monitor_name, spec)
        except OperatorError as e:
            logger.error(f"Service discovery failed for {namespace}/{name}: {e}")
            return ReconcileResult(requeue_after=self.config.retry_delay, error=str(e))

    def build_monitor_spec(self, body: Mapping[str, Any]) -> UptimeKumaMonitorSpec:
        """Translate a Service and its annotations into a monitor spec."""
        meta = body.get('metadata') or {}
        namespace = meta['namespace']
        name = meta['name']
        annotations = meta.get('annotations') or {}

        monitor_type = get_annotation(annotations, ANNOTATION_TYPE, DEFAULT_DISCOVERY_TYPE)
        path = get_annotation(annotations, ANNOTATION_PATH, DEFAULT_DISCOVERY_PATH)
        port = self.resolve_port(body, get_annotation(annotations, ANNOTATION_PORT, DEFAULT_DISCOVERY_PORT))
        host = f"{name}.{namespace}.svc.cluster.local"

        interval = parse_int(get_annotation(annotations, ANNOTATION_INTERVAL))
        if interval is None or interval <= 0:
            interval = self.config.default_monitor_interval

        # Non-HTTP checks (port, ping, dns) target the service host directly.
        target: Dict[str, Any] = {}
        if monitor_type not in {t.value for t in HTTP_FAMILY}:
            target = {"hostname": host, "port": port}

        try:
            return UptimeKumaMonitorSpec(
                monitor_type=monitor_type,
                name=f"{name} ({namespace}/{name})",
                url=f"http://{host}:{port}{path}",
                interval=interval,
                active=True,
                group=get_annotation(annotations, ANNOTATION_GROUP) or None,
                config_ref=get_annotation(annotations, ANNOTATION_CONFIG) or None,
                tags=[
                    MonitorTag(name="source", value="discovery"),
                    MonitorTag(name="namespace", value=namespace, color="#2196F3"),
                ],
                **target,
            )
        except ValidationError as e:
            raise DiscoveryError(f"Service {namespace}/{name} has invalid monitor annotations: {e}") from e

    @staticmethod
    def resolve_port(body: Mapping[str, Any], port_spec: str) -> int:
        """
        Pick the port the monitor should target.

        A number is used when the Service declares it (or declares no ports at
        all), a name selects the matching port, and anything else falls back to
        the first declared port.
        """
        meta = body.get('metadata') or {}
        ports: List[Dict[str, Any]] = (body.get('spec') or {}).get('ports') or []

        number = parse_int(port_spec)
        if number is not None:
            if not ports or any(port.get('port') == number for port in ports):
                return number
        else:
            for port in ports:
                if port.get('name') == port_spec:
                    return int(port['port'])

        if ports:
            logger.debug(f"Port '{port_spec}' not found on service {meta.get('name')}, using first port")
            return int(ports[0]['port'])

        raise DiscoveryError(f"no ports found on service {meta.get('namespace')}/{meta.get('name')}")

    def ensure_monitor(self, service: Mapping[str, Any], monitor_name: str,
                       spec: UptimeKumaMonitorSpec) -> ReconcileResult:
        namespace = service['metadata']['namespace']

        existing = self.store.get_monitor(namespace, monitor_name)
        if existing is None:
            manifest = {
                'apiVersion': f"{API_GROUP}/{API_VERSION}",
                'kind': MONITOR_KIND,
                'metadata': {
                    'name': monitor_name,
                    'namespace': namespace,
                    'labels': {
                        LABEL_MANAGED_BY: MANAGED_BY,
                        LABEL_SOURCE: SOURCE_SERVICE_DISCOVERY,
                    },
                },
                'spec': spec.to_manifest(),
            }
            kopf.append_owner_reference(manifest, owner=service)

            self.store.create_monitor(namespace, manifest)
            logger.info(f"Created UptimeKumaMonitor {namespace}/{monitor_name} for service")
            return ReconcileResult(events=[Event.normal(
                EVENT_MONITOR_CREATED, f"Created UptimeKumaMonitor {monitor_name}")])

        try:
            current = UptimeKumaMonitorSpec.model_validate(existing.get('spec') or {})
        except ValidationError:
            current = None

        if current is not None and not monitor_spec_differs(current, spec):
            return ReconcileResult()

        # Unset fields are sent as null so the merge patch removes them.
        self.store.patch_monitor(namespace, monitor_name,
                                 {'spec': spec.model_dump(mode="json", by_alias=True)})
        logger.info(f"Updated UptimeKumaMonitor {namespace}/{monitor_name} from service annotations")
        return ReconcileResult(events=[Event.normal(
            EVENT_MONITOR_UPDATED, f"Updated UptimeKumaMonitor {monitor_name}")])

    def ensure_deleted(self, namespace: str, monitor_name: str, service_uid: Optional[str]) -> ReconcileResult:
        """Delete the derived monitor, but only if this Service owns it."""
        existing = self.store.get_monitor(namespace, monitor_name)
        if existing is None:
            return ReconcileResult()

        owners = (existing.get('metadata') or {}).get('ownerReferences') or []
        if not any(owner.get('uid') == service_uid for owner in owners):
            logger.debug(f"UptimeKumaMonitor {namespace}/{monitor_name} is not owned by the service, leaving it")
            return ReconcileResult()

        if self.store.delete_monitor(namespace, monitor_name):
            logger.info(f"Deleted UptimeKumaMonitor {namespace}/{monitor_name}, discovery disabled")
            return ReconcileResult(events=[Event.normal(
                EVENT_MONITOR_DELETED, f"Deleted UptimeKumaMonitor {monitor_name}")])
        return ReconcileResult()
