"""Reasoning engine boundary.

The workflow only depends on :class:`ReasoningEngine`. The default
implementation drives a pydantic-ai :class:`~pydantic_ai.Agent` for the
configured model id.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol, Sequence

from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)

from .contracts import ChatMessage, ReasoningResponse

logger = logging.getLogger(__name__)


class ReasoningEngine(Protocol):
    """Black-box model invocation. May be slow and may raise."""

    async def run(
        self, model_id: str, messages: Sequence[ChatMessage]
    ) -> ReasoningResponse:
        """Answer the conversation in ``messages``."""


def to_model_messages(messages: Sequence[ChatMessage]) -> List[ModelMessage]:
    """Convert chat messages into pydantic-ai message history.

    Consecutive system/user messages are grouped into one request;
    assistant messages become responses.
    """
    history: List[ModelMessage] = []
    parts: list = []
    for message in messages:
        if message.role == "assistant":
            if parts:
                history.append(ModelRequest(parts=parts))
                parts = []
            history.append(ModelResponse(parts=[TextPart(content=message.content)]))
        elif message.role == "system":
            parts.append(SystemPromptPart(content=message.content))
        else:
            parts.append(UserPromptPart(content=message.content))
    if parts:
        history.append(ModelRequest(parts=parts))
    return history


class PydanticAIReasoningEngine(ReasoningEngine):
    """Reasoning engine backed by pydantic-ai agents, one per model id."""

    def __init__(self) -> None:
        self._agents: Dict[str, Agent] = {}

    def _agent(self, model_id: str) -> Agent:
        agent = self._agents.get(model_id)
        if agent is None:
            agent = Agent(model_id, output_type=str)
            self._agents[model_id] = agent
        return agent

    async def run(
        self, model_id: str, messages: Sequence[ChatMessage]
    ) -> ReasoningResponse:
        if not messages or messages[-1].role != "user":
            raise ValueError("Conversation must end with a user message")

        history = to_model_messages(messages[:-1])
        logger.debug(
            f"Invoking {model_id} with {len(messages)} messages"
        )
        result = await self._agent(model_id).run(
            messages[-1].content, message_history=history or None
        )
        return ReasoningResponse(response=result.output)
