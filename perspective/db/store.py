"""Decision history store abstraction."""

from __future__ import annotations

from typing import Optional, Protocol

from .models import DecisionMemoryEntry


class DecisionStore(Protocol):
    """Append-only history of decision analyses, read newest-first."""

    async def recent_decisions(
        self, user_id: str, limit: int
    ) -> list[DecisionMemoryEntry]:
        """Return up to ``limit`` entries for ``user_id``, newest first."""

    async def list_decisions(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[DecisionMemoryEntry]:
        """Return the entries for ``user_id``, newest first."""

    async def append_decision(
        self, user_id: str, prompt: str, analysis: str
    ) -> DecisionMemoryEntry:
        """Append one entry and return it."""
