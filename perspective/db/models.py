from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DecisionSummary(BaseModel):
    """The part of a past decision that is replayed to the reasoning engine."""

    prompt: str
    analysis: str
    timestamp: datetime


class DecisionMemoryEntry(DecisionSummary):
    """One past decision analysis of a user."""

    id: Optional[int] = None
    user_id: str


class DecisionRow(SQLModel, table=True):
    """Append-only table of completed decision analyses."""

    __tablename__ = "decisions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    prompt: str
    analysis: str
    timestamp: datetime = Field(default_factory=_utcnow)

    def to_entry(self) -> DecisionMemoryEntry:
        return DecisionMemoryEntry(
            id=self.id,
            user_id=self.user_id,
            prompt=self.prompt,
            analysis=self.analysis,
            timestamp=self.timestamp,
        )
