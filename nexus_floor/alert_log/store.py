"""
Alert Log Store: durable record of every notification attempt.

Behavioral Contract:
- log() never raises into the tick loop; storage errors are logged and dropped
- Retention is capped; the oldest rows are evicted once the cap is exceeded
- Queryable newest-first, optionally by action type
"""

import logging
import sqlite3
import threading
from datetime import datetime
from typing import List, Optional, Protocol, Union
from uuid import uuid4

from nexus_floor.models.notification import AlertLogEntry, AlertLogStatus

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = 1000


class AlertLogSink(Protocol):
    """Fire-and-forget alert logging collaborator."""

    def log(
        self,
        workflow_id: str,
        action_type: str,
        recipient: str,
        message: str,
        status: Union[AlertLogStatus, str],
        error: Optional[str] = None,
    ) -> Optional[str]: ...


class AlertLogStore:
    """
    SQLite-backed alert log. Defaults to an in-memory database.
    """

    def __init__(self, db_path: str = ":memory:", retention: int = DEFAULT_RETENTION):
        self.db_path = db_path
        self.retention = retention
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS alert_log (
                id TEXT PRIMARY KEY,
                workflow_id TEXT NOT NULL DEFAULT '',
                action_type TEXT NOT NULL,
                recipient TEXT NOT NULL,
                message TEXT NOT NULL,
                status TEXT NOT NULL,
                error_message TEXT,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_alert_log_action_type ON alert_log(action_type)
        """)
        self._conn.commit()

    def log(
        self,
        workflow_id: str,
        action_type: str,
        recipient: str,
        message: str,
        status: Union[AlertLogStatus, str] = AlertLogStatus.PENDING,
        error: Optional[str] = None,
    ) -> Optional[str]:
        """Append an entry and trim to the retention cap. Returns the entry id."""
        try:
            entry = AlertLogEntry(
                id=f"alert_{uuid4().hex[:12]}",
                workflow_id=workflow_id or "",
                action_type=action_type,
                recipient=recipient,
                message=message,
                status=AlertLogStatus(status),
                error_message=error,
                created_at=datetime.utcnow(),
            )
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO alert_log (
                        id, workflow_id, action_type, recipient, message,
                        status, error_message, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.id,
                        entry.workflow_id,
                        entry.action_type,
                        entry.recipient,
                        entry.message,
                        entry.status.value,
                        entry.error_message,
                        entry.created_at.isoformat(),
                    ),
                )
                self._conn.execute(
                    """
                    DELETE FROM alert_log WHERE rowid NOT IN (
                        SELECT rowid FROM alert_log ORDER BY rowid DESC LIMIT ?
                    )
                    """,
                    (self.retention,),
                )
                self._conn.commit()
        except (sqlite3.Error, ValueError) as e:
            logger.error("Failed to log alert for %s: %s", recipient, e)
            return None
        return entry.id

    def _deserialize(self, row: sqlite3.Row) -> AlertLogEntry:
        return AlertLogEntry(
            id=row["id"],
            workflow_id=row["workflow_id"],
            action_type=row["action_type"],
            recipient=row["recipient"],
            message=row["message"],
            status=AlertLogStatus(row["status"]),
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_recent(
        self, limit: int = 100, action_type: Optional[str] = None
    ) -> List[AlertLogEntry]:
        """Newest first."""
        with self._lock:
            if action_type:
                rows = self._conn.execute(
                    "SELECT * FROM alert_log WHERE action_type = ? "
                    "ORDER BY rowid DESC LIMIT ?",
                    (action_type, limit),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM alert_log ORDER BY rowid DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [self._deserialize(r) for r in rows]

    def get_by_id(self, entry_id: str) -> Optional[AlertLogEntry]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM alert_log WHERE id = ?", (entry_id,)
            ).fetchone()
        return self._deserialize(row) if row else None

    def update_status(
        self,
        entry_id: str,
        status: Union[AlertLogStatus, str],
        error: Optional[str] = None,
    ) -> bool:
        status = AlertLogStatus(status)
        with self._lock:
            if error:
                cursor = self._conn.execute(
                    "UPDATE alert_log SET status = ?, error_message = ? WHERE id = ?",
                    (status.value, error, entry_id),
                )
            else:
                cursor = self._conn.execute(
                    "UPDATE alert_log SET status = ? WHERE id = ?",
                    (status.value, entry_id),
                )
            self._conn.commit()
        return cursor.rowcount > 0

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM alert_log").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()
