"""Reconciliation logic for UptimeKumaMonitor resources."""
from typing import Any, Dict, List, Optional

from loguru import logger

from ..clients import ClientResolver, ResourceStore, UptimeKumaClient
from ..models import MonitorTag, UptimeKumaMonitorSpec, UptimeKumaMonitorStatus, UptimeStats
from ..models.backend import Monitor
from ..utils import Config, utc_now
from ..utils.constants import EVENT_ORPHANED, REASON_INVALID_SPEC, REASON_MONITOR_SYNC_FAILED, REASON_MONITOR_SYNCED
from ..utils.errors import ExternalAPIError, OperatorError
from .base import BaseReconciler, Event, InvalidSpecError, ReconcileResult, group_id_of


class MonitorReconciler(BaseReconciler):
    """Handles reconciliation of UptimeKumaMonitor resources."""

    def __init__(self, store: ResourceStore, resolver: ClientResolver, config: Optional[Config] = None):
        super().__init__(store, config)
        self.resolver = resolver

    def reconcile(self, spec: Dict[str, Any], status: Optional[Dict[str, Any]],
                  meta: Dict[str, Any]) -> ReconcileResult:
        """
        Reconcile the desired monitor with Uptime Kuma.

        Creating or updating the monitor decides success; tags, the paused
        state and the observed status are synced best effort afterwards.
        """
        namespace = meta['namespace']
        name = meta['name']
        generation = meta.get('generation')

        new_status = UptimeKumaMonitorStatus.from_status(status)

        try:
            spec_model = self.parse_spec(UptimeKumaMonitorSpec, spec)
            client = self.resolver.resolve(namespace, spec_model.config_ref)
            monitor = self.build_monitor(namespace, name, spec_model)

            if new_status.monitorId is None:
                new_status.monitorId = client.create_monitor(monitor)
                logger.info(f"Created monitor '{monitor.name}' with ID {new_status.monitorId}")
            else:
                client.update_monitor(new_status.monitorId, monitor)
                logger.info(f"Updated monitor '{monitor.name}' (ID {new_status.monitorId})")
        except OperatorError as e:
            logger.error(f"Failed to sync UptimeKumaMonitor {namespace}/{name}: {e}")
            reason = REASON_INVALID_SPEC if isinstance(e, InvalidSpecError) else REASON_MONITOR_SYNC_FAILED
            return self.failure(new_status, reason, str(e), generation)

        monitor_id = new_status.monitorId
        record = self.fetch_monitor(client, monitor_id)

        self.sync_tags(client, monitor_id, spec_model.tags, record)
        paused = self.sync_active_state(client, monitor_id, spec_model.active, record)
        self.update_observed_status(client, new_status, paused)
        new_status.lastSyncTime = utc_now()

        return self.success(
            new_status,
            REASON_MONITOR_SYNCED,
            f"Monitor synced successfully (MonitorID: {monitor_id}, Status: {new_status.status})",
            generation,
        )

    def build_monitor(self, namespace: str, name: str, spec: UptimeKumaMonitorSpec) -> Monitor:
        """Build the Uptime Kuma payload for a monitor spec, resolving its group."""
        parent = None
        if spec.group:
            parent = group_id_of(self.store.get_group(namespace, spec.group), spec.group)

        monitor = Monitor(
            name=spec.name or name,
            type=spec.monitor_type.value,
            url=spec.url,
            hostname=spec.hostname,
            port=spec.port,
            interval=spec.interval or self.config.default_monitor_interval,
            retry_interval=spec.retry_interval or None,
            max_retries=spec.max_retries,
            description=spec.description,
            active=spec.active,
            parent=parent,
        )

        if spec.is_http_family() and spec.http is not None:
            monitor.method = spec.http.method
            monitor.body = spec.http.body
            monitor.http_headers = dict(spec.http.headers) or None
            monitor.accepted_status_codes = list(spec.http.accepted_status_codes) or None

        return monitor

    @staticmethod
    def fetch_monitor(client: UptimeKumaClient, monitor_id: int) -> Optional[Monitor]:
        try:
            return client.get_monitor(monitor_id)
        except ExternalAPIError as e:
            logger.warning(f"Could not read monitor {monitor_id} back from Uptime Kuma: {e}")
            return None

    def sync_tags(self, client: UptimeKumaClient, monitor_id: int, tags: List[MonitorTag],
                  record: Optional[Monitor]) -> None:
        """Make sure every tag in the spec is on the monitor with the right value."""
        if not tags:
            return

        current = {link.tag_id: link.value or "" for link in record.tags} if record else {}

        synced = []
        failed = []
        for tag in tags:
            try:
                external = client.find_or_create_tag(tag.name, tag.color)
                if external.id is None:
                    raise ExternalAPIError(f"tag '{tag.name}' has no ID")

                if external.id not in current:
                    client.add_tag_to_monitor(monitor_id, external.id, tag.value)
                elif current[external.id] != tag.value:
                    client.update_monitor_tag(monitor_id, external.id, tag.value)
                synced.append(tag.name)
            except ExternalAPIError as e:
                logger.warning(f"Failed to sync tag '{tag.name}' on monitor {monitor_id}: {e}")
                failed.append(tag.name)

        if failed:
            logger.warning(f"Monitor {monitor_id}: synced tags {synced}, failed tags {failed}")
        else:
            logger.debug(f"Monitor {monitor_id}: synced tags {synced}")

    def sync_active_state(self, client: UptimeKumaClient, monitor_id: int, active: bool,
                          record: Optional[Monitor]) -> Optional[bool]:
        """
        Pause or resume the monitor so it matches ``active``.

        Returns whether the monitor is paused afterwards, or None when that
        could not be determined.
        """
        try:
            if record is not None and record.active is not None:
                paused = not record.active
            else:
                paused = client.get_monitor_status(monitor_id).status == "paused"

            if active and paused:
                client.resume_monitor(monitor_id)
                logger.info(f"Resumed monitor {monitor_id}")
                return False
            if not active and not paused:
                client.pause_monitor(monitor_id)
                logger.info(f"Paused monitor {monitor_id}")
                return True
            return paused
        except ExternalAPIError as e:
            logger.warning(f"Failed to sync active state of monitor {monitor_id}: {e}")
            return None

    @staticmethod
    def update_observed_status(client: UptimeKumaClient, status: UptimeKumaMonitorStatus,
                               paused: Optional[bool]) -> None:
        try:
            report = client.get_monitor_status(status.monitorId)
        except ExternalAPIError as e:
            logger.warning(f"Failed to get status of monitor {status.monitorId}: {e}")
            status.status = "unknown"
            return

        status.status = "paused" if paused else report.status

        if report.uptime24h is not None or report.uptime30d is not None or report.avgPing24h is not None:
            status.uptimeStats = UptimeStats(
                uptime24h=report.uptime24h,
                uptime30d=report.uptime30d,
                avgPing=report.avgPing24h,
            )

    def finalize(self, spec: Dict[str, Any], status: Optional[Dict[str, Any]],
                 meta: Dict[str, Any]) -> ReconcileResult:
        """Delete the monitor from Uptime Kuma, best effort."""
        namespace = meta['namespace']
        name = meta['name']

        monitor_id = UptimeKumaMonitorStatus.from_status(status).monitorId
        if monitor_id is None:
            logger.info(f"UptimeKumaMonitor {namespace}/{name} was never synced, nothing to delete")
            return ReconcileResult()

        try:
            client = self.resolver.resolve(namespace, (spec or {}).get('uptimeKumaConfigRef') or None)
            client.delete_monitor(monitor_id)
        except OperatorError as e:
            logger.error(f"Failed to delete monitor {monitor_id} of {namespace}/{name}: {e}")
            return ReconcileResult(events=[Event.warning(
                EVENT_ORPHANED, f"Monitor {monitor_id} may remain in Uptime Kuma: {e}")])

        logger.info(f"Deleted monitor {monitor_id} of UptimeKumaMonitor {namespace}/{name}")
        return ReconcileResult()
