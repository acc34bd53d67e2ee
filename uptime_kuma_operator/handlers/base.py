"""Pieces shared by every reconciler."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..clients import ResourceStore
from ..models import ResourceStatus, UptimeKumaGroupStatus
from ..utils.config import Config
from ..utils.constants import REASON_INVALID_SPEC
from ..utils.errors import ConfigurationError, DependencyNotReadyError

SpecT = TypeVar("SpecT", bound=BaseModel)


class InvalidSpecError(ConfigurationError):
    reason = REASON_INVALID_SPEC


@dataclass
class Event:
    """A Kubernetes event to post on the reconciled object."""

    type: str
    reason: str
    message: str

    @classmethod
    def normal(cls, reason: str, message: str) -> "Event":
        return cls("Normal", reason, message)

    @classmethod
    def warning(cls, reason: str, message: str) -> "Event":
        return cls("Warning", reason, message)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation attempt.

    ``status`` is merged into the object's status, ``requeue_after`` is the
    delay in seconds before the next attempt and ``error`` is set when the
    attempt failed. Permanent failures are not retried until the spec changes
    or the next drift tick.
    """

    status: Dict[str, Any] = field(default_factory=dict)
    requeue_after: Optional[float] = None
    error: Optional[str] = None
    permanent: bool = False
    events: List[Event] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.error is not None


class BaseReconciler:
    """Status bookkeeping common to the Config, Group and Monitor reconcilers."""

    def __init__(self, store: ResourceStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    @staticmethod
    def parse_spec(model: Type[SpecT], spec: Optional[Mapping[str, Any]]) -> SpecT:
        try:
            return model.model_validate(dict(spec or {}))
        except ValidationError as e:
            raise InvalidSpecError(f"Invalid spec: {e}") from e

    def failure(self, status: ResourceStatus, reason: str, message: str,
                generation: Optional[int], permanent: bool = False) -> ReconcileResult:
        status.set_condition(False, reason, message, generation)
        return ReconcileResult(
            status=status.to_patch(),
            requeue_after=self.config.drift_interval if permanent else self.config.retry_delay,
            error=message,
            permanent=permanent,
        )

    def success(self, status: ResourceStatus, reason: str, message: str,
                generation: Optional[int]) -> ReconcileResult:
        status.observedGeneration = generation
        status.set_condition(True, reason, message, generation)
        return ReconcileResult(status=status.to_patch(), requeue_after=self.config.drift_interval)


def group_id_of(body: Optional[Mapping[str, Any]], group_name: str, label: str = "group") -> int:
    """Return the Uptime Kuma ID of a group resource, or raise if it can't be used yet."""
    if body is None:
        raise ConfigurationError(f"{label} '{group_name}' not found")

    group_id = UptimeKumaGroupStatus.from_status(body.get("status")).groupId
    if group_id is None:
        raise DependencyNotReadyError(f"{label} '{group_name}' has not been synced yet (no GroupID)")
    return group_id
