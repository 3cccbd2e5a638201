"""In-memory implementation of the workflow repository."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from ..contracts import WorkflowStatus
from ..errors import DuplicateStepError, InvalidTransitionError, NotFoundError
from .models import StepRecord, WorkflowInstance, utcnow
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow state in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, WorkflowInstance] = {}
        self._steps: Dict[Tuple[str, str], StepRecord] = {}
        self._step_id = 0

    # ------------------------------------------------------------------
    # Step ledger
    async def has_result(self, instance_id: str, step_name: str) -> bool:
        return (instance_id, step_name) in self._steps

    async def get_result(self, instance_id: str, step_name: str) -> Any:
        return self._steps[(instance_id, step_name)].result

    async def put_result(self, instance_id: str, step_name: str, value: Any) -> None:
        key = (instance_id, step_name)
        if key in self._steps:
            raise DuplicateStepError(instance_id, step_name)
        self._step_id += 1
        self._steps[key] = StepRecord(
            id=self._step_id,
            instance_id=instance_id,
            step_name=step_name,
            result=value,
        )

    async def list_steps(self, instance_id: str) -> list[StepRecord]:
        steps = [s for s in self._steps.values() if s.instance_id == instance_id]
        return sorted(steps, key=lambda s: s.id)

    # ------------------------------------------------------------------
    # Instances
    async def create_instance(self, instance: WorkflowInstance) -> None:
        self._instances[instance.id] = instance.model_copy(deep=True)

    async def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        wf = self._instances.get(instance_id)
        # copies keep readers isolated from later transitions
        return wf.model_copy(deep=True) if wf else None

    async def mark_terminated(self, instance_id: str, output: Any) -> None:
        wf = self._running_instance(instance_id)
        wf.status = WorkflowStatus.TERMINATED
        wf.output = output
        wf.updated_at = utcnow()

    async def mark_errored(self, instance_id: str, error: str) -> None:
        wf = self._running_instance(instance_id)
        wf.status = WorkflowStatus.ERRORED
        wf.error = error
        wf.updated_at = utcnow()

    async def list_instances(
        self, status: Optional[WorkflowStatus] = None
    ) -> list[WorkflowInstance]:
        return [
            wf.model_copy(deep=True)
            for wf in self._instances.values()
            if status is None or wf.status == status
        ]

    def _running_instance(self, instance_id: str) -> WorkflowInstance:
        wf = self._instances.get(instance_id)
        if wf is None:
            raise NotFoundError(instance_id)
        if wf.status.is_terminal:
            raise InvalidTransitionError(
                f"Instance {instance_id} is already {wf.status.value}"
            )
        return wf
