"""Repository abstractions for workflow state persistence."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ..contracts import WorkflowStatus
from .models import StepRecord, WorkflowInstance


class StepLedger(Protocol):
    """Write-once store of step results keyed by (instance_id, step_name)."""

    async def has_result(self, instance_id: str, step_name: str) -> bool:
        """Return ``True`` when a result was recorded for the pair."""

    async def get_result(self, instance_id: str, step_name: str) -> Any:
        """Return the recorded result. Raises ``KeyError`` when absent."""

    async def put_result(self, instance_id: str, step_name: str, value: Any) -> None:
        """Record a result. Raises ``DuplicateStepError`` when already present."""


class WorkflowRepository(StepLedger, Protocol):
    """Protocol for workflow state persistence backends."""

    async def create_instance(self, instance: WorkflowInstance) -> None:
        """Persist a newly created instance."""

    async def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        """Retrieve the workflow instance by id."""

    async def mark_terminated(self, instance_id: str, output: Any) -> None:
        """Move a running instance to ``terminated`` with its output."""

    async def mark_errored(self, instance_id: str, error: str) -> None:
        """Move a running instance to ``errored``."""

    async def list_instances(
        self, status: Optional[WorkflowStatus] = None
    ) -> list[WorkflowInstance]:
        """Return persisted instances, optionally filtered by status."""

    async def list_steps(self, instance_id: str) -> list[StepRecord]:
        """Return the recorded steps of one instance in write order."""
