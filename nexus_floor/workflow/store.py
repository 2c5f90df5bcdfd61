"""
Workflow Store: saved workflow graphs.
Prototype: SQLite, one row per workflow with the graph stored as JSON.
"""

import sqlite3
import threading
from datetime import datetime
from typing import List, Optional, Union

from nexus_floor.models.workflow import Workflow, WorkflowStatus


class WorkflowStore:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                status TEXT NOT NULL,
                workflow_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_workflows_status ON workflows(status)
        """)
        self._conn.commit()

    def save(self, workflow: Workflow) -> Workflow:
        """
        Insert or replace a workflow. The original created_at is kept when
        the workflow already exists.
        """
        existing = self.get(workflow.id)
        if existing:
            workflow.created_at = existing.created_at
        workflow.updated_at = datetime.utcnow()

        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO workflows (
                    id, name, status, workflow_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    workflow.id,
                    workflow.name,
                    workflow.status.value,
                    workflow.model_dump_json(),
                    workflow.created_at.isoformat(),
                    workflow.updated_at.isoformat(),
                ),
            )
            self._conn.commit()
        return workflow

    def get(self, workflow_id: str) -> Optional[Workflow]:
        with self._lock:
            row = self._conn.execute(
                "SELECT workflow_json FROM workflows WHERE id = ?", (workflow_id,)
            ).fetchone()
        return Workflow.model_validate_json(row["workflow_json"]) if row else None

    def list(self, status: Optional[Union[WorkflowStatus, str]] = None) -> List[Workflow]:
        """Most recently updated first."""
        with self._lock:
            if status:
                rows = self._conn.execute(
                    "SELECT workflow_json FROM workflows WHERE status = ? "
                    "ORDER BY updated_at DESC",
                    (WorkflowStatus(status).value,),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT workflow_json FROM workflows ORDER BY updated_at DESC"
                ).fetchall()
        return [Workflow.model_validate_json(r["workflow_json"]) for r in rows]

    def delete(self, workflow_id: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM workflows WHERE id = ?", (workflow_id,)
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def update_status(
        self, workflow_id: str, status: Union[WorkflowStatus, str]
    ) -> Optional[Workflow]:
        workflow = self.get(workflow_id)
        if workflow is None:
            return None
        workflow.status = WorkflowStatus(status)
        return self.save(workflow)

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM workflows").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()
