"""Durable step execution for decision workflows."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .errors import DuplicateStepError, StepFailure
from .persistence import StepLedger

logger = logging.getLogger(__name__)

StepFn = Callable[[], Awaitable[Any]]


class StepExecutor:
    """Runs named steps at most once per instance.

    A step whose result is already in the ledger is not invoked again; its
    recorded result is returned instead. A failing step leaves no record,
    so a later attempt runs it again.
    """

    def __init__(self, ledger: StepLedger) -> None:
        self._ledger = ledger

    async def execute(self, instance_id: str, step_name: str, fn: StepFn) -> Any:
        """Return the result of ``fn`` for this (instance, step) pair.

        Raises:
            StepFailure: ``fn`` raised. The original exception is chained.
            DuplicateStepError: another writer recorded the step while
                ``fn`` was running.
        """
        if await self._ledger.has_result(instance_id, step_name):
            logger.debug(
                f"Step {step_name} already recorded for instance_id={instance_id}; skipping"
            )
            return await self._ledger.get_result(instance_id, step_name)

        logger.debug(f"Running step {step_name} for instance_id={instance_id}")
        try:
            result = await fn()
        except Exception as e:
            logger.warning(
                f"Step {step_name} failed for instance_id={instance_id}: {e}"
            )
            raise StepFailure(step_name, str(e)) from e

        try:
            await self._ledger.put_result(instance_id, step_name, result)
        except DuplicateStepError:
            logger.error(
                f"Step {step_name} was recorded twice for instance_id={instance_id}"
            )
            raise

        logger.info(f"Step {step_name} completed for instance_id={instance_id}")
        return result
