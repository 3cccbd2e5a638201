"""In-memory decision history used by tests and database-less runs."""

from __future__ import annotations

from typing import List, Optional

from .models import DecisionMemoryEntry, _utcnow
from .store import DecisionStore


class InMemoryDecisionStore(DecisionStore):
    def __init__(self) -> None:
        self._entries: List[DecisionMemoryEntry] = []

    async def recent_decisions(
        self, user_id: str, limit: int
    ) -> list[DecisionMemoryEntry]:
        return await self.list_decisions(user_id, limit=limit)

    async def list_decisions(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[DecisionMemoryEntry]:
        entries = [e for e in reversed(self._entries) if e.user_id == user_id]
        return entries if limit is None else entries[:limit]

    async def append_decision(
        self, user_id: str, prompt: str, analysis: str
    ) -> DecisionMemoryEntry:
        entry = DecisionMemoryEntry(
            id=len(self._entries) + 1,
            user_id=user_id,
            prompt=prompt,
            analysis=analysis,
            timestamp=_utcnow(),
        )
        self._entries.append(entry)
        return entry
