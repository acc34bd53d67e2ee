"""Reconciliation logic for UptimeKumaGroup resources."""
from typing import Any, Dict, Optional

from loguru import logger

from ..clients import ClientResolver, ResourceStore
from ..models import UptimeKumaGroupSpec, UptimeKumaGroupStatus, UptimeKumaMonitorStatus
from ..models.backend import Group
from ..utils import Config, utc_now
from ..utils.constants import (
    EVENT_ORPHANED,
    REASON_CIRCULAR_REFERENCE,
    REASON_GROUP_SYNC_FAILED,
    REASON_GROUP_SYNCED,
    REASON_INVALID_SPEC,
)
from ..utils.errors import CycleError, OperatorError, StoreError
from .base import BaseReconciler, Event, InvalidSpecError, ReconcileResult, group_id_of


class GroupReconciler(BaseReconciler):
    """Handles reconciliation of UptimeKumaGroup resources."""

    def __init__(self, store: ResourceStore, resolver: ClientResolver, config: Optional[Config] = None):
        super().__init__(store, config)
        self.resolver = resolver

    def reconcile(self, spec: Dict[str, Any], status: Optional[Dict[str, Any]],
                  meta: Dict[str, Any]) -> ReconcileResult:
        """
        Create or update the group in Uptime Kuma.

        The external ID is written to the status as soon as the group exists,
        so later failures never lead to a duplicate create.
        """
        namespace = meta['namespace']
        name = meta['name']
        generation = meta.get('generation')

        new_status = UptimeKumaGroupStatus.from_status(status)

        try:
            spec_model = self.parse_spec(UptimeKumaGroupSpec, spec)
            client = self.resolver.resolve(namespace, spec_model.config_ref)

            parent_id = None
            if spec_model.parent_group:
                parent_id = self.resolve_parent(namespace, name, spec_model.parent_group)

            group = Group(
                name=spec_model.group_name or name,
                description=spec_model.description,
                weight=spec_model.weight,
                parent=parent_id,
            )

            if new_status.groupId is None:
                new_status.groupId = client.create_group(group)
                logger.info(f"Created group '{group.name}' with ID {new_status.groupId}")
            else:
                client.update_group(new_status.groupId, group)
                logger.info(f"Updated group '{group.name}' (ID {new_status.groupId})")
        except CycleError as e:
            logger.error(f"UptimeKumaGroup {namespace}/{name}: {e}")
            return self.failure(new_status, REASON_CIRCULAR_REFERENCE, str(e), generation, permanent=True)
        except OperatorError as e:
            logger.error(f"Failed to sync UptimeKumaGroup {namespace}/{name}: {e}")
            reason = REASON_INVALID_SPEC if isinstance(e, InvalidSpecError) else REASON_GROUP_SYNC_FAILED
            return self.failure(new_status, reason, str(e), generation)

        new_status.monitorCount = self.count_monitors(namespace, name, new_status.monitorCount)
        new_status.lastSyncTime = utc_now()

        return self.success(new_status, REASON_GROUP_SYNCED,
                            f"Group synced successfully (GroupID: {new_status.groupId})", generation)

    def resolve_parent(self, namespace: str, name: str, parent_name: str) -> int:
        """
        Walk the whole ancestor chain and return the direct parent's group ID.

        A chain that revisits a group or grows past ``max_group_depth`` raises
        ``CycleError``.
        """
        visited = [name]
        parent_body = None
        current: Optional[str] = parent_name

        while current:
            if current in visited:
                chain = " -> ".join(visited + [current])
                raise CycleError(f"circular parent reference detected: {chain}")
            if len(visited) > self.config.max_group_depth:
                raise CycleError(
                    f"parent chain of group '{name}' is deeper than {self.config.max_group_depth} levels"
                )
            visited.append(current)

            body = self.store.get_group(namespace, current)
            if current == parent_name:
                parent_body = body
            if body is None:
                break
            current = (body.get('spec') or {}).get('parentGroup') or None

        return group_id_of(parent_body, parent_name, label="parent group")

    def count_monitors(self, namespace: str, name: str, previous: int) -> int:
        """Count synced monitors referencing this group, keeping the old count if listing fails."""
        try:
            monitors = self.store.list_monitors(namespace)
        except StoreError as e:
            logger.warning(f"Could not count monitors of group {namespace}/{name}: {e}")
            return previous

        return sum(
            1 for monitor in monitors
            if (monitor.get('spec') or {}).get('group') == name
            and UptimeKumaMonitorStatus.from_status(monitor.get('status')).monitorId is not None
        )

    def finalize(self, spec: Dict[str, Any], status: Optional[Dict[str, Any]],
                 meta: Dict[str, Any]) -> ReconcileResult:
        """Delete the group from Uptime Kuma, best effort."""
        namespace = meta['namespace']
        name = meta['name']

        group_id = UptimeKumaGroupStatus.from_status(status).groupId
        if group_id is None:
            logger.info(f"UptimeKumaGroup {namespace}/{name} was never synced, nothing to delete")
            return ReconcileResult()

        try:
            client = self.resolver.resolve(namespace, (spec or {}).get('uptimeKumaConfigRef') or None)
            client.delete_group(group_id, delete_children=False)
        except OperatorError as e:
            logger.error(f"Failed to delete group {group_id} of {namespace}/{name}: {e}")
            return ReconcileResult(events=[Event.warning(
                EVENT_ORPHANED, f"Group {group_id} may remain in Uptime Kuma: {e}")])

        logger.info(f"Deleted group {group_id} of UptimeKumaGroup {namespace}/{name}")
        return ReconcileResult()
