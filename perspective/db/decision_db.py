from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import SQLModel, col, select

from .models import DecisionMemoryEntry, DecisionRow
from .store import DecisionStore

logger = logging.getLogger(__name__)


class DecisionDB(DecisionStore):
    """Async SQL-backed decision history.

    The schema is created lazily on first use, so the store can be built
    from synchronous code (configuration factories, CLI setup).
    """

    def __init__(self, database_url: str) -> None:
        connect_args = (
            {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        )
        self.engine = create_async_engine(
            database_url, echo=False, connect_args=connect_args
        )
        self._initialized = False

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        self._initialized = True

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._initialized:
            await self.init_db()
        async with AsyncSession(self.engine) as session:
            yield session

    async def recent_decisions(
        self, user_id: str, limit: int
    ) -> list[DecisionMemoryEntry]:
        return await self.list_decisions(user_id, limit=limit)

    async def list_decisions(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[DecisionMemoryEntry]:
        stmt = (
            select(DecisionRow)
            .where(DecisionRow.user_id == user_id)
            .order_by(col(DecisionRow.id).desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self.session() as session:
            result = await session.execute(stmt)
            return [row.to_entry() for row in result.scalars().all()]

    async def append_decision(
        self, user_id: str, prompt: str, analysis: str
    ) -> DecisionMemoryEntry:
        row = DecisionRow(user_id=user_id, prompt=prompt, analysis=analysis)
        async with self.session() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            entry = row.to_entry()
        logger.debug(f"Stored decision {entry.id} for user {user_id}")
        return entry
