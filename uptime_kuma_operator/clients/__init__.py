"""Clients for Uptime Kuma and the Kubernetes API."""
from .resolver import ClientResolver
from .store import ResourceStore
from .uptime_kuma import UptimeKumaClient

__all__ = ["ClientResolver", "ResourceStore", "UptimeKumaClient"]
