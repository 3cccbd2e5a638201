"""Creation and status tracking of workflow instances."""

from __future__ import annotations

import asyncio
import logging
import uuid
from functools import partial
from typing import Dict, Optional

from .contracts import DecisionInput, InstanceSnapshot, WorkflowStatus
from .errors import NotFoundError
from .persistence import WorkflowInstance, WorkflowRepository
from .workflow import DecisionWorkflow

logger = logging.getLogger(__name__)


class InstanceRegistry:
    """Creates workflow instances and answers status queries.

    Every instance runs as its own asyncio task; :meth:`create` returns as
    soon as the instance is persisted. Must be used from within a running
    event loop.
    """

    def __init__(self, repository: WorkflowRepository, runner: DecisionWorkflow) -> None:
        self._repository = repository
        self._runner = runner
        self._tasks: Dict[str, asyncio.Task] = {}

    async def create(self, inputs: DecisionInput) -> str:
        """Persist a new running instance and start executing it."""
        instance_id = str(uuid.uuid4())
        await self._repository.create_instance(
            WorkflowInstance(id=instance_id, input=inputs)
        )
        logger.info(f"Created workflow instance_id={instance_id}")
        self._launch(instance_id)
        return instance_id

    async def status(self, instance_id: str) -> InstanceSnapshot:
        return (await self.get(instance_id)).snapshot()

    async def get(self, instance_id: str) -> WorkflowInstance:
        """Full instance record, including operator-facing error detail."""
        instance = await self._repository.get_instance(instance_id)
        if instance is None:
            raise NotFoundError(instance_id)
        return instance

    async def list_instances(
        self, status: Optional[WorkflowStatus] = None
    ) -> list[WorkflowInstance]:
        return await self._repository.list_instances(status)

    async def resume(self, instance_id: str) -> bool:
        """Restart execution of a running instance that has no active task.

        Returns ``False`` for terminal instances.
        """
        instance = await self.get(instance_id)
        if instance.status.is_terminal:
            return False
        self._launch(instance_id)
        return True

    async def resume_incomplete(self) -> list[str]:
        """Resume every persisted instance still marked ``running``."""
        resumed = []
        for instance in await self._repository.list_instances(WorkflowStatus.RUNNING):
            if not self.is_active(instance.id):
                self._launch(instance.id)
                resumed.append(instance.id)
        if resumed:
            logger.info(f"Resumed {len(resumed)} incomplete workflow(s)")
        return resumed

    def is_active(self, instance_id: str) -> bool:
        task = self._tasks.get(instance_id)
        return task is not None and not task.done()

    async def join(self, instance_id: str) -> None:
        """Wait for the active run of ``instance_id``, if any."""
        task = self._tasks.get(instance_id)
        if task is not None:
            await asyncio.wait({task})

    async def shutdown(self) -> None:
        """Wait for all in-flight runs to finish."""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} workflow(s) to finish")
            await asyncio.wait(tasks)

    def _launch(self, instance_id: str) -> asyncio.Task:
        if self.is_active(instance_id):
            return self._tasks[instance_id]
        task = asyncio.create_task(
            self._runner.run(instance_id), name=f"workflow-{instance_id}"
        )
        self._tasks[instance_id] = task
        task.add_done_callback(partial(self._on_done, instance_id))
        return task

    def _on_done(self, instance_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(instance_id) is task:
            del self._tasks[instance_id]
        if task.cancelled():
            logger.warning(f"Workflow run cancelled for instance_id={instance_id}")
            return
        exc = task.exception()
        if exc is not None:
            # Infrastructure failures leave the instance running and resumable.
            logger.error(
                f"Workflow run aborted for instance_id={instance_id}: {exc}",
                exc_info=exc,
            )
