"""Pytest configuration and fixtures for the test suite."""
import pytest
from unittest.mock import Mock

from uptime_kuma_operator.clients import ClientResolver, ResourceStore, UptimeKumaClient
from uptime_kuma_operator.models.backend import HealthReport, Monitor, MonitorStatusReport
from uptime_kuma_operator.utils.config import Config


@pytest.fixture
def test_config():
    """Test configuration."""
    return Config(
        kubeconfig=None,
        drift_interval=300.0,
        retry_delay=60.0,
        default_config_name="uptime-kuma",
        default_secret_key="api-key",
        default_timeout=30,
        default_monitor_interval=60,
        max_group_depth=10,
    )


@pytest.fixture
def mock_store():
    """Mock Kubernetes store where nothing exists yet."""
    store = Mock(spec=ResourceStore)
    store.get_config.return_value = None
    store.get_group.return_value = None
    store.get_monitor.return_value = None
    store.get_secret.return_value = None
    store.list_monitors.return_value = []
    store.delete_monitor.return_value = True
    return store


@pytest.fixture
def mock_uptime_client():
    """Mock Uptime Kuma client with a healthy, freshly created monitor."""
    client = Mock(spec=UptimeKumaClient)
    client.get_health.return_value = HealthReport(ok=True, status="healthy", version="2.0.0")
    client.create_group.return_value = 7
    client.create_monitor.return_value = 42
    client.get_monitor.return_value = Monitor(id=42, name="web", type="http", interval=60, active=True)
    client.get_monitor_status.return_value = MonitorStatusReport(status="up", uptime24h=99.5, avgPing24h=12.0)
    return client


@pytest.fixture
def mock_resolver(mock_uptime_client):
    """Mock resolver that always hands out the mock client."""
    resolver = Mock(spec=ClientResolver)
    resolver.resolve.return_value = mock_uptime_client
    resolver.client_for.return_value = mock_uptime_client
    resolver.read_api_key.return_value = ("secret-key", "1")
    return resolver


@pytest.fixture
def meta():
    """Metadata of a freshly created resource."""
    return {
        "name": "web",
        "namespace": "default",
        "uid": "uid-web",
        "generation": 1,
    }
