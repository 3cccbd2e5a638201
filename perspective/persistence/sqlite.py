"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..contracts import DecisionInput, WorkflowStatus
from ..errors import DuplicateStepError, InvalidTransitionError, NotFoundError
from .models import StepRecord, WorkflowInstance, utcnow
from .repository import WorkflowRepository


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflow state and step results using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_instances (
                id TEXT PRIMARY KEY,
                input TEXT NOT NULL,
                status TEXT NOT NULL,
                output TEXT,
                error TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS step_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                instance_id TEXT NOT NULL,
                step_name TEXT NOT NULL,
                result TEXT,
                recorded_at TEXT NOT NULL,
                UNIQUE (instance_id, step_name)
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            try:
                cur.execute(query, params)
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    @staticmethod
    def _row_to_instance(row: sqlite3.Row) -> WorkflowInstance:
        return WorkflowInstance(
            id=row["id"],
            input=DecisionInput.model_validate_json(row["input"]),
            status=row["status"],
            output=json.loads(row["output"]) if row["output"] is not None else None,
            error=row["error"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Step ledger
    async def has_result(self, instance_id: str, step_name: str) -> bool:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT 1 FROM step_records WHERE instance_id = ? AND step_name = ?",
            instance_id,
            step_name,
        )
        return row is not None

    async def get_result(self, instance_id: str, step_name: str) -> Any:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT result FROM step_records WHERE instance_id = ? AND step_name = ?",
            instance_id,
            step_name,
        )
        if row is None:
            raise KeyError((instance_id, step_name))
        return json.loads(row["result"])

    async def put_result(self, instance_id: str, step_name: str, value: Any) -> None:
        try:
            await asyncio.to_thread(
                self._execute,
                "INSERT INTO step_records (instance_id, step_name, result, recorded_at) VALUES (?, ?, ?, ?)",
                instance_id,
                step_name,
                json.dumps(value),
                utcnow().isoformat(),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateStepError(instance_id, step_name) from exc

    async def list_steps(self, instance_id: str) -> list[StepRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT id, instance_id, step_name, result, recorded_at FROM step_records WHERE instance_id = ? ORDER BY id",
            instance_id,
        )
        return [
            StepRecord(
                id=r["id"],
                instance_id=r["instance_id"],
                step_name=r["step_name"],
                result=json.loads(r["result"]),
                recorded_at=datetime.fromisoformat(r["recorded_at"]),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Instances
    async def create_instance(self, instance: WorkflowInstance) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO workflow_instances (id, input, status, output, error, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            instance.id,
            instance.input.model_dump_json(),
            instance.status.value,
            json.dumps(instance.output) if instance.output is not None else None,
            instance.error,
            instance.created_at.isoformat(),
            instance.updated_at.isoformat(),
        )

    async def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT * FROM workflow_instances WHERE id = ?",
            instance_id,
        )
        return self._row_to_instance(row) if row else None

    async def mark_terminated(self, instance_id: str, output: Any) -> None:
        updated = await asyncio.to_thread(
            self._execute,
            "UPDATE workflow_instances SET status = ?, output = ?, updated_at = ? WHERE id = ? AND status = ?",
            WorkflowStatus.TERMINATED.value,
            json.dumps(output),
            utcnow().isoformat(),
            instance_id,
            WorkflowStatus.RUNNING.value,
        )
        if not updated:
            await self._raise_transition_error(instance_id)

    async def mark_errored(self, instance_id: str, error: str) -> None:
        updated = await asyncio.to_thread(
            self._execute,
            "UPDATE workflow_instances SET status = ?, error = ?, updated_at = ? WHERE id = ? AND status = ?",
            WorkflowStatus.ERRORED.value,
            error,
            utcnow().isoformat(),
            instance_id,
            WorkflowStatus.RUNNING.value,
        )
        if not updated:
            await self._raise_transition_error(instance_id)

    async def _raise_transition_error(self, instance_id: str) -> None:
        wf = await self.get_instance(instance_id)
        if wf is None:
            raise NotFoundError(instance_id)
        raise InvalidTransitionError(
            f"Instance {instance_id} is already {wf.status.value}"
        )

    async def list_instances(
        self, status: Optional[WorkflowStatus] = None
    ) -> list[WorkflowInstance]:
        if status is None:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_instances ORDER BY created_at",
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT * FROM workflow_instances WHERE status = ? ORDER BY created_at",
                status.value,
            )
        return [self._row_to_instance(r) for r in rows]
