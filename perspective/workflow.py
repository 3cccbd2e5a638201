"""The decision analysis workflow: fetch history, reason, persist."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Optional

from .config import ReasoningConfig
from .constants import STEP_FETCH_HISTORY, STEP_PERSIST, STEP_REASON
from .db import DecisionStore
from .errors import DuplicateStepError, NotFoundError, StepFailure
from .execute import StepExecutor
from .persistence import WorkflowInstance, WorkflowRepository
from .reasoning import ReasoningEngine
from .steps import fetch_history, persist, reason
from .utils.retry import retrying

logger = logging.getLogger(__name__)


class DecisionWorkflow:
    """Runs one instance through its fixed sequence of durable steps.

    Steps execute strictly in order. Each goes through the
    :class:`StepExecutor`, so re-running an instance after a crash skips
    the steps that already recorded a result.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        decisions: DecisionStore,
        engine: ReasoningEngine,
        config: Optional[ReasoningConfig] = None,
        executor: Optional[StepExecutor] = None,
    ) -> None:
        self._repository = repository
        self._decisions = decisions
        self._engine = engine
        self._config = config or ReasoningConfig()
        self._executor = executor or StepExecutor(repository)

    async def run(self, instance_id: str) -> WorkflowInstance:
        """Drive ``instance_id`` to a terminal state and return it.

        Terminal instances are returned unchanged. Step failures end the
        instance in ``errored``; they are not raised.
        """
        instance = await self._repository.get_instance(instance_id)
        if instance is None:
            raise NotFoundError(instance_id)
        if instance.status.is_terminal:
            logger.debug(
                f"Instance {instance_id} already {instance.status.value}; nothing to run"
            )
            return instance

        try:
            output = await self._run_steps(instance)
        except StepFailure as e:
            logger.error(f"Workflow errored for instance_id={instance_id}: {e}")
            await self._repository.mark_errored(instance_id, str(e))
        except DuplicateStepError as e:
            logger.exception(
                f"Step ledger invariant violated for instance_id={instance_id}"
            )
            await self._repository.mark_errored(instance_id, str(e))
        else:
            await self._repository.mark_terminated(instance_id, output)
            logger.info(f"Workflow terminated for instance_id={instance_id}")

        return await self._repository.get_instance(instance_id)

    async def _run_steps(self, instance: WorkflowInstance) -> Any:
        inputs = instance.input
        cfg = self._config

        history = await self._executor.execute(
            instance.id,
            STEP_FETCH_HISTORY,
            partial(fetch_history, self._decisions, inputs.user_id, cfg.history_limit),
        )

        analysis = await self._executor.execute(
            instance.id,
            STEP_REASON,
            retrying(
                partial(
                    reason,
                    self._engine,
                    cfg.model_id,
                    cfg.system_prompt,
                    history,
                    inputs.prompt,
                ),
                cfg.max_retries,
            ),
        )

        await self._executor.execute(
            instance.id,
            STEP_PERSIST,
            partial(persist, self._decisions, inputs.user_id, inputs.prompt, analysis),
        )
        return analysis
