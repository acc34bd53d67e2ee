"""Tests for UptimeKumaConfig reconciliation."""
import pytest

from uptime_kuma_operator.handlers.config_reconciler import ConfigReconciler
from uptime_kuma_operator.models import UptimeKumaConfigStatus
from uptime_kuma_operator.models.backend import HealthReport
from uptime_kuma_operator.utils.errors import ExternalAPIError, InvalidSecretError, SecretNotFoundError

SPEC = {"apiUrl": "http://kuma:3001", "apiKeySecret": {"name": "kuma-api"}}


@pytest.fixture
def reconciler(mock_store, mock_resolver, test_config):
    return ConfigReconciler(mock_store, mock_resolver, test_config)


def ready(result):
    return UptimeKumaConfigStatus.from_status(result.status).get_ready_condition()


class TestConfigReconciler:
    """Tests for the health check flow."""

    def test_connects(self, reconciler, meta):
        """Test a healthy instance marks the config connected."""
        result = reconciler.reconcile(SPEC, {}, meta)

        status = UptimeKumaConfigStatus.from_status(result.status)
        assert status.connected is True
        assert status.version == "2.0.0"
        assert status.lastConnectionTime is not None
        assert status.observedGeneration == 1
        assert ready(result).status == "True"
        assert ready(result).reason == "ConnectionSuccess"
        assert ready(result).message == "Successfully connected to Uptime Kuma (version 2.0.0)"
        assert not result.failed
        assert result.requeue_after == 300.0

    def test_client_built_with_secret_version(self, reconciler, mock_resolver, meta):
        reconciler.reconcile(SPEC, {}, meta)
        args = mock_resolver.client_for.call_args[0]
        assert args[0] == "default"
        assert args[1] == "web"
        assert args[4] == "secret-key"
        assert args[5] == "1"

    def test_missing_secret(self, reconciler, mock_resolver, mock_uptime_client, meta):
        mock_resolver.read_api_key.side_effect = SecretNotFoundError("secret default/kuma-api not found")

        result = reconciler.reconcile(SPEC, {"connected": True}, meta)

        assert UptimeKumaConfigStatus.from_status(result.status).connected is False
        assert ready(result).reason == "SecretNotFound"
        assert result.failed
        assert result.requeue_after == 60.0
        mock_uptime_client.get_health.assert_not_called()

    def test_invalid_secret(self, reconciler, mock_resolver, meta):
        mock_resolver.read_api_key.side_effect = InvalidSecretError("API key in secret default/kuma-api is empty")

        result = reconciler.reconcile(SPEC, {}, meta)

        assert ready(result).reason == "InvalidSecret"
        assert ready(result).status == "False"

    def test_unreachable(self, reconciler, mock_uptime_client, meta):
        mock_uptime_client.get_health.side_effect = ExternalAPIError("connection refused")

        result = reconciler.reconcile(SPEC, {"connected": True}, meta)

        assert UptimeKumaConfigStatus.from_status(result.status).connected is False
        assert ready(result).reason == "ConnectionFailed"
        assert result.failed
        assert not result.permanent
        assert result.requeue_after == 60.0

    def test_unhealthy(self, reconciler, mock_uptime_client, meta):
        mock_uptime_client.get_health.return_value = HealthReport(ok=True, status="degraded")

        result = reconciler.reconcile(SPEC, {}, meta)

        assert ready(result).reason == "ConnectionFailed"
        assert UptimeKumaConfigStatus.from_status(result.status).connected is False

    def test_invalid_spec(self, reconciler, mock_resolver, meta):
        result = reconciler.reconcile({"apiUrl": "kuma"}, {}, meta)

        assert ready(result).reason == "InvalidSpec"
        assert result.failed
        mock_resolver.read_api_key.assert_not_called()
