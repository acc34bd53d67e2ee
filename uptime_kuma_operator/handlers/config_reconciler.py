"""Reconciliation logic for UptimeKumaConfig resources."""
from typing import Any, Dict, Optional

from loguru import logger

from ..clients import ClientResolver, ResourceStore
from ..models import UptimeKumaConfigSpec, UptimeKumaConfigStatus
from ..utils import Config, utc_now
from ..utils.constants import REASON_CONNECTION_FAILED, REASON_CONNECTION_SUCCESS
from ..utils.errors import ExternalAPIError, OperatorError
from .base import BaseReconciler, ReconcileResult


class ConfigReconciler(BaseReconciler):
    """Handles reconciliation of UptimeKumaConfig resources."""

    def __init__(self, store: ResourceStore, resolver: ClientResolver, config: Optional[Config] = None):
        super().__init__(store, config)
        self.resolver = resolver

    def reconcile(self, spec: Dict[str, Any], status: Optional[Dict[str, Any]],
                  meta: Dict[str, Any]) -> ReconcileResult:
        """
        Check that the referenced Uptime Kuma instance is reachable with the
        configured API key, and record the outcome in the status.
        """
        namespace = meta['namespace']
        name = meta['name']
        generation = meta.get('generation')

        new_status = UptimeKumaConfigStatus.from_status(status)

        try:
            spec_model = self.parse_spec(UptimeKumaConfigSpec, spec)
            api_key, secret_version = self.resolver.read_api_key(namespace, spec_model)
        except OperatorError as e:
            logger.error(f"UptimeKumaConfig {namespace}/{name}: {e}")
            new_status.connected = False
            return self.failure(new_status, e.reason or REASON_CONNECTION_FAILED, str(e), generation)

        client = self.resolver.client_for(namespace, name, meta, spec_model, api_key, secret_version)

        try:
            health = client.get_health()
        except ExternalAPIError as e:
            logger.error(f"UptimeKumaConfig {namespace}/{name} cannot reach {spec_model.api_url}: {e}")
            new_status.connected = False
            return self.failure(new_status, REASON_CONNECTION_FAILED,
                                f"Failed to connect to Uptime Kuma: {e}", generation)

        if health.status and health.status != "healthy":
            logger.warning(f"Uptime Kuma at {spec_model.api_url} reports status '{health.status}'")
            new_status.connected = False
            return self.failure(new_status, REASON_CONNECTION_FAILED,
                                f"Uptime Kuma reported status '{health.status}'", generation)

        new_status.connected = True
        new_status.lastConnectionTime = utc_now()
        new_status.version = health.version

        logger.info(f"UptimeKumaConfig {namespace}/{name} connected (version {health.version})")
        return self.success(new_status, REASON_CONNECTION_SUCCESS,
                            f"Successfully connected to Uptime Kuma (version {health.version})", generation)
