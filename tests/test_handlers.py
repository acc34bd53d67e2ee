"""Tests for the kopf handler wiring."""
import threading
from unittest.mock import Mock, patch

import kopf
import pytest

from uptime_kuma_operator.handlers import resources
from uptime_kuma_operator.handlers.base import Event, ReconcileResult
from uptime_kuma_operator.handlers.resources import OperatorContext, apply_result
from uptime_kuma_operator.handlers.startup import configure_operator
from uptime_kuma_operator.utils import KeyedLocks, RetryTimers, StripedLocks
from uptime_kuma_operator.utils.config import Config
from uptime_kuma_operator.utils.errors import StoreError


@pytest.fixture
def context(mock_store, test_config):
    """Operator context with mocked reconcilers installed for the handlers."""
    ctx = OperatorContext(test_config, store=mock_store)
    ctx.configs = Mock()
    ctx.groups = Mock()
    ctx.monitors = Mock()
    ctx.discovery = Mock()
    ctx.resolver = Mock()
    ctx.retries = Mock(spec=RetryTimers)
    resources.set_context(ctx)
    yield ctx
    resources.set_context(None)


@pytest.fixture
def kopf_events():
    with patch.object(resources.kopf, "event") as event, patch.object(resources.kopf, "warn") as warn:
        yield event, warn


class TestApplyResult:
    """Tests for writing results back through kopf."""

    def test_status_patched(self, kopf_events):
        kopf_patch = Mock()

        apply_result(ReconcileResult(status={"groupId": 7}), {}, kopf_patch)

        kopf_patch.status.update.assert_called_once_with({"groupId": 7})

    def test_temporary_failure_retries(self, kopf_events):
        """Test that a failed attempt is retried after its delay, with status still written."""
        kopf_patch = Mock()
        result = ReconcileResult(status={"groupId": None}, requeue_after=60.0, error="boom")

        with pytest.raises(kopf.TemporaryError) as exc:
            apply_result(result, {}, kopf_patch)

        assert exc.value.delay == 60.0
        kopf_patch.status.update.assert_called_once()

    def test_permanent_failure_not_retried(self, kopf_events):
        result = ReconcileResult(status={}, requeue_after=300.0, error="cycle", permanent=True)
        apply_result(result, {}, Mock())

    def test_events_posted(self, kopf_events):
        event, warn = kopf_events
        body = {"metadata": {"name": "x"}}
        result = ReconcileResult(events=[
            Event.normal("DiscoveredMonitorCreated", "created"),
            Event.warning("OrphanedExternalObject", "left behind"),
        ])

        apply_result(result, body, Mock())

        event.assert_called_once_with(body, type="Normal", reason="DiscoveredMonitorCreated", message="created")
        warn.assert_called_once_with(body, reason="OrphanedExternalObject", message="left behind")


class TestHandlers:
    """Tests for the registered handler functions."""

    def test_reconcile_group(self, context, meta, kopf_events):
        context.groups.reconcile.return_value = ReconcileResult(status={"groupId": 7})
        kopf_patch = Mock()

        resources.reconcile_group(spec={"groupName": "a"}, status=None, meta=meta, body={}, patch=kopf_patch)

        context.groups.reconcile.assert_called_once_with({"groupName": "a"}, {}, meta)
        kopf_patch.status.update.assert_called_once_with({"groupId": 7})

    def test_deleting_object_not_reconciled(self, context, meta, kopf_events):
        meta = {**meta, "deletionTimestamp": "2024-01-01T00:00:00Z"}

        resources.reconcile_monitor(spec={}, status={}, meta=meta, body={}, patch=Mock())

        context.monitors.reconcile.assert_not_called()

    def test_delete_never_raises(self, context, meta, kopf_events):
        """Test that a failed external delete only warns, so the finalizer is released."""
        _, warn = kopf_events
        context.monitors.finalize.return_value = ReconcileResult(
            events=[Event.warning("OrphanedExternalObject", "Monitor 42 may remain")])

        resources.delete_monitor(spec={}, status={"monitorId": 42}, meta=meta, body={})

        warn.assert_called_once()

    def test_config_delete_invalidates_client(self, context, meta):
        resources.on_config_event(event={"type": "DELETED"}, meta=meta)
        context.resolver.invalidate.assert_called_once_with("default", "web")

    def test_config_modify_keeps_client(self, context, meta):
        resources.on_config_event(event={"type": "MODIFIED"}, meta=meta)
        context.resolver.invalidate.assert_not_called()

    def test_config_delete_releases_lock(self, context, meta):
        context.locks.get(meta["uid"])

        resources.on_config_event(event={"type": "DELETED"}, meta=meta)

        assert len(context.locks) == 0


class TestServiceHandlers:
    """Tests for Service discovery through raw watch events."""

    def service(self, uid="uid-web", name="web"):
        return {"apiVersion": "v1", "kind": "Service",
                "metadata": {"name": name, "namespace": "default", "uid": uid}}

    def test_service_reconciled(self, context, kopf_events):
        body = self.service()
        context.discovery.reconcile.return_value = ReconcileResult()

        resources.on_service_event(event={"type": "ADDED"}, body=body, meta=body["metadata"])

        context.discovery.reconcile.assert_called_once_with(body)
        context.retries.cancel.assert_called_once_with("uid-web")
        context.retries.schedule.assert_not_called()

    def test_failure_schedules_retry(self, context, kopf_events):
        """Test that a failed attempt is retried from a timer instead of raising."""
        body = self.service()
        context.discovery.reconcile.return_value = ReconcileResult(requeue_after=60.0, error="no ports found")

        resources.on_service_event(event={"type": "MODIFIED"}, body=body, meta=body["metadata"])

        context.retries.schedule.assert_called_once_with(
            "uid-web", 60.0, resources.retry_service, "uid-web", "default", "web")

    def test_deleted_service_not_reconciled(self, context, kopf_events):
        body = self.service()

        resources.on_service_event(event={"type": "DELETED"}, body=body, meta=body["metadata"])

        context.discovery.reconcile.assert_not_called()
        context.retries.cancel.assert_called_once_with("uid-web")

    def test_services_hold_no_locks(self, context, kopf_events):
        context.discovery.reconcile.return_value = ReconcileResult()

        for i in range(500):
            body = self.service(uid=f"uid-{i}", name=f"svc-{i}")
            resources.on_service_event(event={"type": None}, body=body, meta=body["metadata"])

        assert context.discovery.reconcile.call_count == 500
        assert len(context.locks) == 0

    def test_retry_rereads_service(self, context, mock_store, kopf_events):
        body = self.service()
        mock_store.get_service.return_value = body
        context.discovery.reconcile.return_value = ReconcileResult()

        resources.retry_service("uid-web", "default", "web")

        mock_store.get_service.assert_called_once_with("default", "web")
        context.discovery.reconcile.assert_called_once_with(body)

    def test_retry_dropped_for_deleted_service(self, context, mock_store):
        mock_store.get_service.return_value = None

        resources.retry_service("uid-web", "default", "web")

        context.discovery.reconcile.assert_not_called()
        context.retries.schedule.assert_not_called()

    def test_retry_dropped_for_recreated_service(self, context, mock_store):
        """Test that a Service recreated under the same name is left to its own events."""
        mock_store.get_service.return_value = self.service(uid="uid-new")

        resources.retry_service("uid-web", "default", "web")

        context.discovery.reconcile.assert_not_called()

    def test_retry_read_failure_reschedules(self, context, mock_store):
        mock_store.get_service.side_effect = StoreError("Failed to get service default/web: Internal Server Error")

        resources.retry_service("uid-web", "default", "web")

        context.retries.schedule.assert_called_once_with(
            "uid-web", 60.0, resources.retry_service, "uid-web", "default", "web")


class TestConcurrencyHelpers:
    """Tests for the per-object locks and retry timers."""

    def test_same_object_shares_lock(self):
        locks = KeyedLocks()
        assert locks.get("uid-1") is locks.get("uid-1")
        assert locks.get("uid-1") is not locks.get("uid-2")

        locks.discard("uid-1")

        assert len(locks) == 1

    def test_striped_locks_are_shared(self):
        locks = StripedLocks(size=4)

        pool = {id(locks.get(f"uid-{i}")) for i in range(100)}

        assert len(pool) <= 4
        assert locks.get("uid-1") is locks.get("uid-1")

    def test_retry_fires_and_is_forgotten(self):
        retries = RetryTimers()
        fired = threading.Event()

        retries.schedule("uid-1", 0.01, fired.set)

        assert fired.wait(5)
        # The timer clears its entry just before running the callback.
        assert len(retries) == 0

    def test_reschedule_replaces_pending_retry(self):
        retries = RetryTimers()
        first, second = Mock(), Mock()

        retries.schedule("uid-1", 60, first)
        retries.schedule("uid-1", 60, second)

        assert len(retries) == 1
        retries.cancel("uid-1")
        assert len(retries) == 0
        first.assert_not_called()

    def test_cancel_all(self):
        retries = RetryTimers()
        retries.schedule("uid-1", 60, Mock())
        retries.schedule("uid-2", 60, Mock())

        retries.cancel_all()

        assert len(retries) == 0


class TestStartup:
    """Tests for operator settings applied at startup."""

    def test_settings(self):
        settings = kopf.OperatorSettings()

        with patch("uptime_kuma_operator.handlers.startup.load_kubernetes_config") as load:
            configure_operator(settings)

        load.assert_called_once()
        assert settings.persistence.finalizer == "monitoring.uptimekuma.io/finalizer"
        assert settings.execution.max_workers == Config().max_workers
        assert isinstance(settings.persistence.progress_storage, kopf.AnnotationsProgressStorage)
