"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

import json
from typing import Any, Optional

import asyncpg

from ..contracts import DecisionInput, WorkflowStatus
from ..errors import DuplicateStepError, InvalidTransitionError, NotFoundError
from .models import StepRecord, WorkflowInstance, utcnow
from .repository import WorkflowRepository


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflow state and step results using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_instances (
                id TEXT PRIMARY KEY,
                input JSONB NOT NULL,
                status TEXT NOT NULL,
                output JSONB,
                error TEXT,
                created_at TIMESTAMPTZ NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS step_records (
                id SERIAL PRIMARY KEY,
                instance_id TEXT NOT NULL,
                step_name TEXT NOT NULL,
                result JSONB,
                recorded_at TIMESTAMPTZ NOT NULL,
                UNIQUE (instance_id, step_name)
            )
            """
        )

    @staticmethod
    def _row_to_instance(row: asyncpg.Record) -> WorkflowInstance:
        return WorkflowInstance(
            id=row["id"],
            input=DecisionInput.model_validate_json(row["input"]),
            status=row["status"],
            output=json.loads(row["output"]) if row["output"] is not None else None,
            error=row["error"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Step ledger
    async def has_result(self, instance_id: str, step_name: str) -> bool:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT 1 FROM step_records WHERE instance_id = $1 AND step_name = $2",
                instance_id,
                step_name,
            )
        finally:
            await conn.close()
        return row is not None

    async def get_result(self, instance_id: str, step_name: str) -> Any:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT result FROM step_records WHERE instance_id = $1 AND step_name = $2",
                instance_id,
                step_name,
            )
        finally:
            await conn.close()
        if row is None:
            raise KeyError((instance_id, step_name))
        return json.loads(row["result"])

    async def put_result(self, instance_id: str, step_name: str, value: Any) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO step_records (instance_id, step_name, result, recorded_at) VALUES ($1, $2, $3, $4)",
                instance_id,
                step_name,
                json.dumps(value),
                utcnow(),
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateStepError(instance_id, step_name) from exc
        finally:
            await conn.close()

    async def list_steps(self, instance_id: str) -> list[StepRecord]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT id, instance_id, step_name, result, recorded_at FROM step_records WHERE instance_id = $1 ORDER BY id",
                instance_id,
            )
        finally:
            await conn.close()
        return [
            StepRecord(
                id=r["id"],
                instance_id=r["instance_id"],
                step_name=r["step_name"],
                result=json.loads(r["result"]),
                recorded_at=r["recorded_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Instances
    async def create_instance(self, instance: WorkflowInstance) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO workflow_instances (id, input, status, output, error, created_at, updated_at) VALUES ($1, $2, $3, $4, $5, $6, $7)",
                instance.id,
                instance.input.model_dump_json(),
                instance.status.value,
                json.dumps(instance.output) if instance.output is not None else None,
                instance.error,
                instance.created_at,
                instance.updated_at,
            )
        finally:
            await conn.close()

    async def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT * FROM workflow_instances WHERE id = $1", instance_id
            )
        finally:
            await conn.close()
        return self._row_to_instance(row) if row else None

    async def mark_terminated(self, instance_id: str, output: Any) -> None:
        await self._transition(
            instance_id,
            "UPDATE workflow_instances SET status = $1, output = $2, updated_at = $3 WHERE id = $4 AND status = $5",
            WorkflowStatus.TERMINATED.value,
            json.dumps(output),
        )

    async def mark_errored(self, instance_id: str, error: str) -> None:
        await self._transition(
            instance_id,
            "UPDATE workflow_instances SET status = $1, error = $2, updated_at = $3 WHERE id = $4 AND status = $5",
            WorkflowStatus.ERRORED.value,
            error,
        )

    async def _transition(
        self, instance_id: str, query: str, status: str, value: Any
    ) -> None:
        conn = await self._connect()
        try:
            result = await conn.execute(
                query,
                status,
                value,
                utcnow(),
                instance_id,
                WorkflowStatus.RUNNING.value,
            )
        finally:
            await conn.close()
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        if result.endswith(" 0"):
            wf = await self.get_instance(instance_id)
            if wf is None:
                raise NotFoundError(instance_id)
            raise InvalidTransitionError(
                f"Instance {instance_id} is already {wf.status.value}"
            )

    async def list_instances(
        self, status: Optional[WorkflowStatus] = None
    ) -> list[WorkflowInstance]:
        conn = await self._connect()
        try:
            if status is None:
                rows = await conn.fetch(
                    "SELECT * FROM workflow_instances ORDER BY created_at"
                )
            else:
                rows = await conn.fetch(
                    "SELECT * FROM workflow_instances WHERE status = $1 ORDER BY created_at",
                    status.value,
                )
        finally:
            await conn.close()
        return [self._row_to_instance(r) for r in rows]
