"""Client-side waiting on workflow completion."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from .constants import DEFAULT_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL
from .contracts import (
    CompletedResult,
    ErrorResult,
    InstanceSnapshot,
    PollResult,
    TimeoutResult,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    async def status(self, instance_id: str) -> InstanceSnapshot:
        ...


class StatusPoller:
    """Polls an instance until it is terminal or the attempt budget runs out.

    Giving up does not affect the instance; it keeps running and can be
    queried again later.
    """

    def __init__(
        self,
        source: StatusSource,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._sleep = sleep

    async def wait(
        self,
        instance_id: str,
        max_attempts: int = DEFAULT_POLL_ATTEMPTS,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> PollResult:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        snapshot = None
        for attempt in range(1, max_attempts + 1):
            snapshot = await self._source.status(instance_id)
            if snapshot.status == WorkflowStatus.TERMINATED:
                return CompletedResult(output=snapshot.output)
            if snapshot.status == WorkflowStatus.ERRORED:
                return ErrorResult()
            logger.debug(
                f"Instance {instance_id} still {snapshot.status.value} (poll {attempt}/{max_attempts})"
            )
            if attempt < max_attempts:
                await self._sleep(interval)

        logger.info(
            f"Stopped polling instance_id={instance_id} after {max_attempts} attempts"
        )
        return TimeoutResult(attempts=max_attempts, last_status=snapshot.status)
