"""Data models for persisted workflow state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..contracts import DecisionInput, InstanceSnapshot, WorkflowStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepRecord(BaseModel):
    """Durable result of one step of one instance."""

    id: Optional[int] = None
    instance_id: str
    step_name: str
    result: Any = None
    recorded_at: datetime = Field(default_factory=utcnow)


class WorkflowInstance(BaseModel):
    """Persisted workflow instance data.

    ``error`` holds the operator-facing failure detail of an errored
    instance. It is never part of :class:`InstanceSnapshot`.
    """

    id: str
    input: DecisionInput
    status: WorkflowStatus = WorkflowStatus.RUNNING
    output: Any = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def snapshot(self) -> InstanceSnapshot:
        return InstanceSnapshot(
            id=self.id,
            status=self.status,
            output=self.output if self.status == WorkflowStatus.TERMINATED else None,
        )
