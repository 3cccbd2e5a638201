"""Decision history storage."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PerspectiveConfig, load_config
from .decision_db import DecisionDB
from .inmemory import InMemoryDecisionStore
from .models import DecisionMemoryEntry, DecisionRow, DecisionSummary
from .store import DecisionStore

_store_instance: DecisionStore | None = None


def to_async_url(database_url: str) -> str:
    """Translate a plain database URL into its async SQLAlchemy form."""
    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        return f"sqlite+aiosqlite:///{path}"
    for scheme in ("postgresql://", "postgres://"):
        if database_url.startswith(scheme):
            return "postgresql+asyncpg://" + database_url[len(scheme):]
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_decision_store(
    database_url: Optional[str] = None, config: Optional[PerspectiveConfig] = None
) -> DecisionStore:
    """Factory for the decision history store.

    Uses the same database URL resolution as
    :func:`perspective.persistence.get_repository`.
    """

    global _store_instance
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("PERSPECTIVE_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        _store_instance = InMemoryDecisionStore()
    else:
        _store_instance = DecisionDB(to_async_url(database_url))
    return _store_instance


def reset_decision_store() -> None:
    global _store_instance
    _store_instance = None


__all__ = [
    "DecisionDB",
    "DecisionMemoryEntry",
    "DecisionRow",
    "DecisionStore",
    "DecisionSummary",
    "InMemoryDecisionStore",
    "get_decision_store",
    "reset_decision_store",
    "to_async_url",
]
