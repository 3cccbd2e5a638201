"""Message contracts for the decision workflow."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class WorkflowStatus(str, Enum):
    """Lifecycle states of a workflow instance."""

    RUNNING = "running"
    TERMINATED = "terminated"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.RUNNING


class DecisionInput(BaseModel):
    """Immutable parameters supplied when an instance is created."""

    model_config = {"frozen": True}

    prompt: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class ChatMessage(BaseModel):
    """One entry of the conversation sent to the reasoning engine."""

    role: Literal["system", "user", "assistant"]
    content: str


class ReasoningResponse(BaseModel):
    response: str


class AnalyzeRequest(BaseModel):
    prompt: str = Field(min_length=1)


class AnalyzeResponse(BaseModel):
    analysis: str


class CompletedResult(BaseModel):
    """The instance terminated; ``output`` is the reasoning result."""

    kind: Literal["completed"] = "completed"
    output: Any = None


class ErrorResult(BaseModel):
    """The instance errored. Carries no internal detail."""

    kind: Literal["error"] = "error"
    message: str = "workflow errored"


class TimeoutResult(BaseModel):
    """Polling gave up; the instance may still be running."""

    kind: Literal["timeout"] = "timeout"
    attempts: int
    last_status: WorkflowStatus = WorkflowStatus.RUNNING


PollResult = Union[CompletedResult, ErrorResult, TimeoutResult]


class InstanceSnapshot(BaseModel):
    """Caller-facing view of a workflow instance."""

    id: str
    status: WorkflowStatus
    output: Optional[Any] = None
