"""Exception hierarchy used across the reconcilers.

Every failure a reconciler can recover from derives from ``OperatorError`` so
the kopf layer can turn it into a condition and a retry instead of a crash.
"""
from typing import Optional

from .constants import REASON_INVALID_SECRET, REASON_SECRET_NOT_FOUND


class OperatorError(Exception):
    """Base class for recoverable reconciliation failures."""

    reason: Optional[str] = None
    permanent = False


class ConfigurationError(OperatorError):
    """A resource references something that is missing or malformed."""


class SecretNotFoundError(ConfigurationError):
    reason = REASON_SECRET_NOT_FOUND


class InvalidSecretError(ConfigurationError):
    reason = REASON_INVALID_SECRET


class DiscoveryError(ConfigurationError):
    """A Service cannot be turned into a monitor."""


class DependencyNotReadyError(OperatorError):
    """A referenced Config or Group exists but is not usable yet."""


class CycleError(OperatorError):
    """The parent chain of a group loops back on itself or never ends."""

    permanent = True


class StoreError(OperatorError):
    """The Kubernetes API rejected a read or write."""


class ExternalAPIError(OperatorError):
    """A call to the Uptime Kuma backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
