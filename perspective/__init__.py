"""Perspective Engine: durable decision-analysis workflows."""

from .contracts import DecisionInput, InstanceSnapshot, WorkflowStatus
from .db import DecisionMemoryEntry, get_decision_store
from .errors import DuplicateStepError, NotFoundError, StepFailure
from .execute import StepExecutor
from .persistence import get_repository
from .poller import StatusPoller
from .registry import InstanceRegistry
from .workflow import DecisionWorkflow

__version__ = "0.1.0"
__all__ = [
    "DecisionInput",
    "DecisionMemoryEntry",
    "DecisionWorkflow",
    "DuplicateStepError",
    "InstanceRegistry",
    "InstanceSnapshot",
    "NotFoundError",
    "StatusPoller",
    "StepExecutor",
    "StepFailure",
    "WorkflowStatus",
    "get_decision_store",
    "get_repository",
]
