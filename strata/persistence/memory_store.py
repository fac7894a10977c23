"""Long-term memory notes the user explicitly asked the agent to remember."""

import logging
import sqlite3
import uuid
from pathlib import Path
from typing import List, Optional

from strata.persistence.plan_store import DEFAULT_DB_PATH
from strata.utils.clock import Clock, SYSTEM_CLOCK

logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(self, db_path: Optional[str] = None, clock: Clock = SYSTEM_CLOCK):
        self.db_path = str(db_path or DEFAULT_DB_PATH)
        self._clock = clock
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS memory_items (
                    id TEXT PRIMARY KEY,
                    content TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_memory_created ON memory_items(created_at)"
            )
            conn.commit()

    def list(self, limit: int = 20) -> List[str]:
        """Most recent notes first."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT content FROM memory_items ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [r[0] for r in rows]

    def add(self, content: str) -> Optional[str]:
        """Store a note; blank content is ignored. Returns the new id."""
        trimmed = (content or "").strip()
        if not trimmed:
            return None
        item_id = uuid.uuid4().hex[:12]
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO memory_items (id, content, created_at) VALUES (?, ?, ?)",
                (item_id, trimmed, self._clock.time()),
            )
            conn.commit()
        return item_id

    def clear(self) -> int:
        with sqlite3.connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM memory_items")
            conn.commit()
        logger.info("Cleared %d memory notes", cur.rowcount)
        return cur.rowcount
