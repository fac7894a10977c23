"""SQLite-backed single-slot store for the agent's pending clarification.

When the agent has to ask the user something before it can continue a
multi-step goal, the question (and the half-built action list) is written
here. The slot outlives restarts, so on startup and after every LLM turn the
caller checks ``get_pending()`` to know whether the agent is waiting on the
user.
"""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from strata.config import get_data_dir
from strata.utils.clock import Clock, SYSTEM_CLOCK

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = get_data_dir() / "strata.db"
ACTIVE_ID = "active"


@dataclass(frozen=True)
class PendingPlan:
    id: str
    status: str
    question: str
    context: Optional[str]
    action_payload: Optional[str]
    updated_at: float


class PendingPlanStore:
    """Persist at most one pending plan. Every save overwrites the slot."""

    def __init__(self, db_path: Optional[str] = None, clock: Clock = SYSTEM_CLOCK):
        self.db_path = str(db_path or DEFAULT_DB_PATH)
        self._clock = clock
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS plan_state (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    pending_question TEXT,
                    pending_context TEXT,
                    pending_action_json TEXT,
                    updated_at REAL NOT NULL
                )
            """)
            conn.commit()

    def get_pending(self) -> Optional[PendingPlan]:
        """Load the pending plan, or None when the agent is not waiting on the user."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM plan_state WHERE id = ?", (ACTIVE_ID,)
            ).fetchone()
        if row is None or not row["pending_question"]:
            return None
        return PendingPlan(
            id=row["id"],
            status=row["status"],
            question=row["pending_question"],
            context=row["pending_context"],
            action_payload=row["pending_action_json"],
            updated_at=row["updated_at"],
        )

    def save_pending(
        self,
        status: str,
        question: str,
        context: Optional[str] = None,
        action_payload: Optional[str] = None,
    ) -> PendingPlan:
        """Insert or replace the pending plan."""
        updated_at = self._clock.time()
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO plan_state (id, status, pending_question, pending_context,
                    pending_action_json, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    status=excluded.status,
                    pending_question=excluded.pending_question,
                    pending_context=excluded.pending_context,
                    pending_action_json=excluded.pending_action_json,
                    updated_at=excluded.updated_at
                """,
                (ACTIVE_ID, status, question, context, action_payload, updated_at),
            )
            conn.commit()
        logger.info("Saved pending plan (status=%s)", status)
        return PendingPlan(
            id=ACTIVE_ID,
            status=status,
            question=question,
            context=context,
            action_payload=action_payload,
            updated_at=updated_at,
        )

    def clear_pending(self) -> bool:
        """Drop the pending plan. Returns True if one was stored."""
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM plan_state WHERE id = ?", (ACTIVE_ID,))
            conn.commit()
        if cur.rowcount:
            logger.info("Cleared pending plan")
        return cur.rowcount > 0
