"""Bodies of the decision workflow steps."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .contracts import ChatMessage
from .db import DecisionStore, DecisionSummary
from .reasoning import ReasoningEngine

logger = logging.getLogger(__name__)

HISTORY_FIELDS = set(DecisionSummary.model_fields)


async def fetch_history(
    store: DecisionStore, user_id: str, limit: int
) -> list[dict[str, Any]]:
    """Return the ``limit`` most recent entries of ``user_id``, newest first.

    Only the replayed fields (prompt, analysis, timestamp) are kept, JSON-ready
    so the step ledger can record them.
    """
    if limit <= 0:
        return []
    entries = await store.recent_decisions(user_id, limit)
    return [entry.model_dump(mode="json", include=HISTORY_FIELDS) for entry in entries]


def build_messages(
    system_prompt: str,
    history: Iterable[Mapping[str, Any] | DecisionSummary],
    prompt: str,
) -> list[ChatMessage]:
    """Build the reasoning conversation.

    ``history`` is newest-first as read from the store; it is replayed
    oldest-first so the model sees it in chronological order.
    """
    entries = [
        h if isinstance(h, DecisionSummary) else DecisionSummary.model_validate(h)
        for h in history
    ]
    messages = [ChatMessage(role="system", content=system_prompt)]
    messages.extend(
        ChatMessage(role="user", content=entry.prompt) for entry in reversed(entries)
    )
    messages.append(ChatMessage(role="user", content=f"Decision: {prompt}"))
    return messages


async def reason(
    engine: ReasoningEngine,
    model_id: str,
    system_prompt: str,
    history: Iterable[Mapping[str, Any]],
    prompt: str,
) -> str:
    """Ask the reasoning engine about ``prompt`` in light of ``history``."""
    messages = build_messages(system_prompt, history, prompt)
    response = await engine.run(model_id, messages)
    return response.response


async def persist(
    store: DecisionStore, user_id: str, prompt: str, analysis: str
) -> dict[str, Any]:
    entry = await store.append_decision(user_id, prompt, analysis)
    logger.debug(f"Persisted decision for user {user_id}")
    return entry.model_dump(mode="json")
