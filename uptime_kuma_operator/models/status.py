"""Pydantic models for the custom resource statuses."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.constants import CONDITION_READY
from ..utils.helpers import utc_now


class Condition(BaseModel):
    """Condition represents the current state of a resource."""

    type: str = Field(..., description="Type of condition")
    status: str = Field(..., description="Status of condition (True/False/Unknown)")
    lastTransitionTime: datetime = Field(..., description="Last time condition transitioned")
    reason: str = Field(..., description="Machine-readable reason for condition")
    message: str = Field(..., description="Human-readable message for condition")
    observedGeneration: Optional[int] = Field(None, description="Generation the condition was computed for")


def _unset_zero_id(v):
    # Statuses written before ids became optional used 0 for "unsynced".
    if v in (0, "0"):
        return None
    return v


class ResourceStatus(BaseModel):
    """Fields shared by every status in this operator."""

    model_config = ConfigDict(extra="ignore")

    conditions: List[Condition] = Field(default_factory=list, description="Current conditions")
    observedGeneration: Optional[int] = Field(None, description="Last generation reconciled")

    @classmethod
    def from_status(cls, status: Optional[Dict[str, Any]]):
        return cls.model_validate(dict(status or {}))

    def get_ready_condition(self) -> Optional[Condition]:
        """Get the Ready condition if it exists."""
        for condition in self.conditions:
            if condition.type == CONDITION_READY:
                return condition
        return None

    def is_ready(self) -> bool:
        condition = self.get_ready_condition()
        return condition is not None and condition.status == "True"

    def set_condition(self, status: bool, reason: str, message: str,
                      generation: Optional[int] = None,
                      condition_type: str = CONDITION_READY) -> Condition:
        """
        Set a condition, keeping lastTransitionTime unless the status flips.

        Returns the stored condition.
        """
        value = "True" if status else "False"
        for condition in self.conditions:
            if condition.type == condition_type:
                if condition.status != value:
                    condition.status = value
                    condition.lastTransitionTime = utc_now()
                condition.reason = reason
                condition.message = message
                condition.observedGeneration = generation
                return condition

        condition = Condition(
            type=condition_type,
            status=value,
            lastTransitionTime=utc_now(),
            reason=reason,
            message=message,
            observedGeneration=generation,
        )
        self.conditions.append(condition)
        return condition

    def to_patch(self) -> Dict[str, Any]:
        """Render the status for a merge patch."""
        return self.model_dump(mode="json")


class UptimeKumaConfigStatus(ResourceStatus):
    """Status of UptimeKumaConfig custom resource."""

    connected: bool = Field(False, description="Whether the last health check succeeded")
    lastConnectionTime: Optional[datetime] = Field(None, description="Last successful health check")
    version: Optional[str] = Field(None, description="Version reported by Uptime Kuma")


class UptimeKumaGroupStatus(ResourceStatus):
    """Status of UptimeKumaGroup custom resource."""

    groupId: Optional[int] = Field(None, description="ID in Uptime Kuma")
    monitorCount: int = Field(0, description="Synced monitors referencing this group")
    lastSyncTime: Optional[datetime] = Field(None, description="Last synchronization time")

    @field_validator('groupId', mode='before')
    @classmethod
    def zero_is_unsynced(cls, v):
        return _unset_zero_id(v)


class UptimeStats(BaseModel):
    """Uptime figures reported by Uptime Kuma."""

    uptime24h: Optional[float] = Field(None)
    uptime30d: Optional[float] = Field(None)
    avgPing: Optional[float] = Field(None)


class UptimeKumaMonitorStatus(ResourceStatus):
    """Status of UptimeKumaMonitor custom resource."""

    monitorId: Optional[int] = Field(None, description="ID in Uptime Kuma")
    status: Optional[str] = Field(None, description="Observed status (unknown/up/down/pending/maintenance/paused)")
    uptimeStats: Optional[UptimeStats] = Field(None)
    lastSyncTime: Optional[datetime] = Field(None, description="Last synchronization time")

    @field_validator('monitorId', mode='before')
    @classmethod
    def zero_is_unsynced(cls, v):
        return _unset_zero_id(v)
