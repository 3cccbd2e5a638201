"""Wiring of the decision workflow components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import PerspectiveConfig, load_config
from .db import DecisionStore, get_decision_store
from .persistence import WorkflowRepository, get_repository
from .poller import StatusPoller
from .reasoning import PydanticAIReasoningEngine, ReasoningEngine
from .registry import InstanceRegistry
from .workflow import DecisionWorkflow


@dataclass
class Services:
    config: PerspectiveConfig
    repository: WorkflowRepository
    decisions: DecisionStore
    engine: ReasoningEngine
    registry: InstanceRegistry
    poller: StatusPoller


def build_services(
    config: Optional[PerspectiveConfig] = None,
    repository: Optional[WorkflowRepository] = None,
    decisions: Optional[DecisionStore] = None,
    engine: Optional[ReasoningEngine] = None,
) -> Services:
    """Assemble the component graph, filling unspecified parts from ``config``."""
    if config is None:
        config = load_config()
        repository = repository or get_repository()
        decisions = decisions or get_decision_store()
    else:
        repository = repository or get_repository(config=config)
        decisions = decisions or get_decision_store(config=config)
    engine = engine or PydanticAIReasoningEngine()

    runner = DecisionWorkflow(repository, decisions, engine, config=config.reasoning)
    registry = InstanceRegistry(repository, runner)
    return Services(
        config=config,
        repository=repository,
        decisions=decisions,
        engine=engine,
        registry=registry,
        poller=StatusPoller(registry),
    )
