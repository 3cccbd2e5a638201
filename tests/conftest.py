import asyncio
from typing import Optional, Sequence

import pytest

import perspective.db as db
import perspective.persistence as persistence
from perspective.config import PerspectiveConfig
from perspective.contracts import ChatMessage, ReasoningResponse
from perspective.db import InMemoryDecisionStore
from perspective.persistence import InMemoryWorkflowRepository
from perspective.service import build_services


class FakeReasoningEngine:
    """Records every conversation it is asked to answer."""

    def __init__(
        self,
        response: str = "Consider what you would regret not trying.",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: list[list[ChatMessage]] = []
        self.release: Optional[asyncio.Event] = None

    def hold(self) -> asyncio.Event:
        """Block every call until the returned event is set."""
        self.release = asyncio.Event()
        return self.release

    async def run(
        self, model_id: str, messages: Sequence[ChatMessage]
    ) -> ReasoningResponse:
        self.calls.append(list(messages))
        if self.release is not None:
            await self.release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ReasoningResponse(response=self.response)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment."""
    for var in ("PERSPECTIVE_DATABASE_URL", "DATABASE_URL", "PERSPECTIVE_MODEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("PERSPECTIVE_CONFIG", str(tmp_path / "missing.yaml"))
    persistence.reset_repository()
    db.reset_decision_store()
    yield
    persistence.reset_repository()
    db.reset_decision_store()


@pytest.fixture
def make_engine():
    return FakeReasoningEngine


@pytest.fixture
def engine() -> FakeReasoningEngine:
    return FakeReasoningEngine()


@pytest.fixture
def repository() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def decisions() -> InMemoryDecisionStore:
    return InMemoryDecisionStore()


@pytest.fixture
def config() -> PerspectiveConfig:
    cfg = PerspectiveConfig()
    cfg.polling.interval = 0.01
    cfg.polling.max_attempts = 200
    return cfg


@pytest.fixture
def services(config, repository, decisions, engine):
    return build_services(
        config=config, repository=repository, decisions=decisions, engine=engine
    )
