"""Kopf handlers for the Uptime Kuma resources and annotated Services."""
from typing import Any, Callable, Optional

import kopf
from loguru import logger

from ..clients import ClientResolver, ResourceStore
from ..utils import Config, KeyedLocks, RetryTimers, StripedLocks
from ..utils.constants import API_GROUP, API_VERSION, CONFIG_PLURAL, GROUP_PLURAL, MONITOR_PLURAL
from ..utils.errors import StoreError
from .base import ReconcileResult
from .config_reconciler import ConfigReconciler
from .discovery_reconciler import DiscoveryReconciler
from .group_reconciler import GroupReconciler
from .monitor_reconciler import MonitorReconciler

_settings = Config()


class OperatorContext:
    """Store, resolver and reconcilers shared by every handler."""

    def __init__(self, config: Config, store: Optional[ResourceStore] = None):
        self.config = config
        self.store = store or ResourceStore()
        self.resolver = ClientResolver(self.store, config)
        self.configs = ConfigReconciler(self.store, self.resolver, config)
        self.groups = GroupReconciler(self.store, self.resolver, config)
        self.monitors = MonitorReconciler(self.store, self.resolver, config)
        self.discovery = DiscoveryReconciler(self.store, config)
        self.locks = KeyedLocks()
        self.service_locks = StripedLocks()
        self.retries = RetryTimers()


# Lazily initialized so the Kubernetes config is loaded first
_context: Optional[OperatorContext] = None


def get_context() -> OperatorContext:
    """Get the shared operator context (lazy initialization)."""
    global _context
    if _context is None:
        _context = OperatorContext(_settings)
    return _context


def set_context(context: Optional[OperatorContext]) -> None:
    global _context
    _context = context


def post_events(result: ReconcileResult, body: Any) -> None:
    for event in result.events:
        if event.type == "Warning":
            kopf.warn(body, reason=event.reason, message=event.message)
        else:
            kopf.event(body, type=event.type, reason=event.reason, message=event.message)


def apply_result(result: ReconcileResult, body: Any, patch: Any) -> None:
    """Write a reconcile result back through kopf: status, events, and a retry on failure."""
    if result.status:
        patch.status.update(result.status)

    post_events(result, body)

    if result.failed and not result.permanent:
        raise kopf.TemporaryError(result.error, delay=result.requeue_after or _settings.retry_delay)


def run_serialized(meta: Any, fn: Callable[..., ReconcileResult], *args: Any) -> ReconcileResult:
    """Run a reconcile step while holding the object's lock."""
    with get_context().locks.get(meta['uid']):
        return fn(*args)


def _reconcile(kind: str, fn: Callable[..., ReconcileResult], spec, status, meta, body, patch) -> None:
    if meta.get('deletionTimestamp'):
        logger.debug(f"{kind} {meta['namespace']}/{meta['name']} is being deleted, skipping reconcile")
        return

    logger.info(f"Reconciling {kind} {meta['namespace']}/{meta['name']}")
    result = run_serialized(meta, fn, dict(spec or {}), dict(status or {}), dict(meta))
    apply_result(result, body, patch)


def _finalize(kind: str, fn: Callable[..., ReconcileResult], spec, status, meta, body) -> None:
    logger.info(f"Deleting {kind} {meta['namespace']}/{meta['name']}")
    result = run_serialized(meta, fn, dict(spec or {}), dict(status or {}), dict(meta))
    post_events(result, body)
    get_context().locks.discard(meta['uid'])


# UptimeKumaConfig

@kopf.on.resume(API_GROUP, API_VERSION, CONFIG_PLURAL)
@kopf.on.create(API_GROUP, API_VERSION, CONFIG_PLURAL)
@kopf.on.update(API_GROUP, API_VERSION, CONFIG_PLURAL)
@kopf.timer(API_GROUP, API_VERSION, CONFIG_PLURAL, interval=_settings.drift_interval)
def reconcile_config(spec, status, meta, body, patch, **kwargs):
    """Handle UptimeKumaConfig creation, updates and periodic health checks."""
    _reconcile("UptimeKumaConfig", get_context().configs.reconcile, spec, status, meta, body, patch)


@kopf.on.event(API_GROUP, API_VERSION, CONFIG_PLURAL)
def on_config_event(event, meta, **kwargs):
    """Drop the cached client and lock of a deleted UptimeKumaConfig."""
    if event.get('type') == 'DELETED':
        get_context().resolver.invalidate(meta['namespace'], meta['name'])
        get_context().locks.discard(meta['uid'])


# UptimeKumaGroup

@kopf.on.resume(API_GROUP, API_VERSION, GROUP_PLURAL)
@kopf.on.create(API_GROUP, API_VERSION, GROUP_PLURAL)
@kopf.on.update(API_GROUP, API_VERSION, GROUP_PLURAL)
@kopf.timer(API_GROUP, API_VERSION, GROUP_PLURAL, interval=_settings.drift_interval)
def reconcile_group(spec, status, meta, body, patch, **kwargs):
    """Handle UptimeKumaGroup creation, updates and drift correction."""
    _reconcile("UptimeKumaGroup", get_context().groups.reconcile, spec, status, meta, body, patch)


@kopf.on.delete(API_GROUP, API_VERSION, GROUP_PLURAL)
def delete_group(spec, status, meta, body, **kwargs):
    """Handle UptimeKumaGroup deletion."""
    _finalize("UptimeKumaGroup", get_context().groups.finalize, spec, status, meta, body)


# UptimeKumaMonitor

@kopf.on.resume(API_GROUP, API_VERSION, MONITOR_PLURAL)
@kopf.on.create(API_GROUP, API_VERSION, MONITOR_PLURAL)
@kopf.on.update(API_GROUP, API_VERSION, MONITOR_PLURAL)
@kopf.timer(API_GROUP, API_VERSION, MONITOR_PLURAL, interval=_settings.drift_interval)
def reconcile_monitor(spec, status, meta, body, patch, **kwargs):
    """Handle UptimeKumaMonitor creation, updates and drift correction."""
    _reconcile("UptimeKumaMonitor", get_context().monitors.reconcile, spec, status, meta, body, patch)


@kopf.on.delete(API_GROUP, API_VERSION, MONITOR_PLURAL)
def delete_monitor(spec, status, meta, body, **kwargs):
    """Handle UptimeKumaMonitor deletion."""
    _finalize("UptimeKumaMonitor", get_context().monitors.finalize, spec, status, meta, body)


# Service discovery
#
# Services are watched through raw events rather than change handlers, so kopf
# never writes progress or diff-base annotations onto them. Failed attempts are
# retried from our own timers, and a fixed pool of locks keeps a retry from
# overlapping the event handler for the same Service.

def discover_service(body: Any) -> None:
    """Create, update or remove the monitor derived from a Service's annotations."""
    ctx = get_context()
    meta = body['metadata']
    result = ctx.discovery.reconcile(body)
    post_events(result, body)

    if result.failed:
        delay = result.requeue_after or _settings.retry_delay
        logger.warning(f"Discovery for Service {meta['namespace']}/{meta['name']} failed, "
                       f"retrying in {delay}s: {result.error}")
        ctx.retries.schedule(meta['uid'], delay, retry_service, meta['uid'], meta['namespace'], meta['name'])
    else:
        ctx.retries.cancel(meta['uid'])


def retry_service(uid: str, namespace: str, name: str) -> None:
    """Re-read a Service whose discovery failed and reconcile it again."""
    ctx = get_context()
    with ctx.service_locks.get(uid):
        try:
            body = ctx.store.get_service(namespace, name)
        except StoreError as e:
            logger.warning(f"Failed to re-read Service {namespace}/{name}, retrying in {_settings.retry_delay}s: {e}")
            ctx.retries.schedule(uid, _settings.retry_delay, retry_service, uid, namespace, name)
            return

        if body is None or body['metadata'].get('uid') != uid:
            logger.debug(f"Service {namespace}/{name} is gone, dropping its retry")
            return
        discover_service(body)


@kopf.on.event('v1', 'services')
def on_service_event(event, body, meta, **kwargs):
    """Reconcile discovery for every listed, added or modified Service."""
    if event.get('type') == 'DELETED':
        # The derived monitor is garbage-collected through its owner reference.
        get_context().retries.cancel(meta['uid'])
        return
    with get_context().service_locks.get(meta['uid']):
        discover_service(body)


@kopf.on.cleanup()
def cancel_retries(**kwargs):
    get_context().retries.cancel_all()


def register_handlers():
    """Register all handlers. This function is called from main.py."""
    logger.info("UptimeKumaConfig, UptimeKumaGroup, UptimeKumaMonitor and Service handlers registered")
