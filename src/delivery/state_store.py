"""
SQLite State Store for offline review.

Provides portable persistence for:
- Vocabulary words with their mastery state and due flag
- Review history log
- Session history
- The remaining-review counter shown to the learner

Database location: ~/.vocab-review/state.db

The store only keeps a due flag per word. It implements the review
collaborators (fetch_due_items, record_review, notify_remaining_count) so a
session can run without the platform.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from loguru import logger

from src.review.errors import FetchFailure, RecordFailure
from src.review.models import ItemState, ReviewItem, ReviewResult, SessionStats

# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ReviewRecord:
    """A single logged answer."""

    id: int
    item_key: str
    reviewed_at: datetime
    is_correct: bool


@dataclass
class SessionRecord:
    """A review session summary."""

    id: int
    started_at: datetime
    ended_at: datetime | None
    correct: int
    incorrect: int
    retention: int


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# State Store
# =============================================================================


class StateStore:
    """
    SQLite-backed persistence for offline review sessions.

    Handles:
    - Word storage (key, meanings, state, due flag, deck order)
    - Review log
    - Session history
    """

    DEFAULT_DB_PATH = Path.home() / ".vocab-review" / "state.db"

    def __init__(self, db_path: Path | None = None, batch_limit: int = 50):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.vocab-review/state.db)
            batch_limit: Maximum words returned by fetch_due_items()
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.batch_limit = batch_limit

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"StateStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS items (
                key TEXT PRIMARY KEY,
                meanings TEXT NOT NULL DEFAULT '[]',
                state TEXT NOT NULL DEFAULT 'learned',
                due INTEGER NOT NULL DEFAULT 1,
                position INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS review_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                item_key TEXT NOT NULL,
                reviewed_at TEXT NOT NULL,
                is_correct INTEGER NOT NULL,
                FOREIGN KEY (item_key) REFERENCES items(key)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS session_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at TEXT NOT NULL,
                ended_at TEXT,
                correct INTEGER DEFAULT 0,
                incorrect INTEGER DEFAULT 0,
                retention INTEGER DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS meta (
                name TEXT PRIMARY KEY,
                value TEXT
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_items_due
            ON items(due, position)
        """)

        self.conn.commit()

    # =========================================================================
    # Words
    # =========================================================================

    def upsert_items(self, items: Iterable[ReviewItem], mark_due: bool = True) -> int:
        """
        Insert or update words, appending new ones after the existing deck.

        Returns:
            Number of words written
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT COALESCE(MAX(position), -1) AS pos FROM items")
        position = cursor.fetchone()["pos"] + 1

        count = 0
        for item in items:
            cursor.execute(
                """
                INSERT INTO items (key, meanings, state, due, position, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    meanings = excluded.meanings,
                    state = excluded.state,
                    due = excluded.due,
                    updated_at = excluded.updated_at
            """,
                (
                    item.key,
                    json.dumps(item.meanings, ensure_ascii=False),
                    item.state.value,
                    int(mark_due),
                    position,
                    _now(),
                ),
            )
            position += 1
            count += 1

        self.conn.commit()
        self.set_remaining_count(self.count_due_items())
        return count

    def get_item(self, key: str) -> ReviewItem | None:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM items WHERE key = ?", (key,))
        row = cursor.fetchone()
        return self._row_to_item(row) if row else None

    def is_due(self, key: str) -> bool:
        cursor = self.conn.cursor()
        cursor.execute("SELECT due FROM items WHERE key = ?", (key,))
        row = cursor.fetchone()
        return bool(row and row["due"])

    def count_due_items(self) -> int:
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) AS cnt FROM items WHERE due = 1")
        return cursor.fetchone()["cnt"]

    async def fetch_due_items(self) -> list[ReviewItem]:
        """
        Get words flagged due, in deck order.

        Raises:
            FetchFailure: database error
        """
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT * FROM items
                WHERE due = 1
                ORDER BY position ASC
                LIMIT ?
            """,
                (self.batch_limit,),
            )
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read due words: {e}")
            raise FetchFailure(str(e)) from e

        return [self._row_to_item(row) for row in rows]

    def apply_result(self, item: ReviewItem, result: ReviewResult) -> None:
        """Persist a word's state after an answer; exited words stop being due."""
        self.conn.execute(
            "UPDATE items SET state = ?, due = ?, updated_at = ? WHERE key = ?",
            (item.state.value, int(result.requeued), _now(), item.key),
        )
        self.conn.commit()

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ReviewItem:
        return ReviewItem(
            key=row["key"],
            meanings=json.loads(row["meanings"]),
            state=ItemState(row["state"]),
        )

    # =========================================================================
    # Review Log
    # =========================================================================

    async def record_review(self, key: str, is_correct: bool) -> None:
        """
        Log an answer.

        Raises:
            RecordFailure: database error
        """
        try:
            self.conn.execute(
                "INSERT INTO review_log (item_key, reviewed_at, is_correct) VALUES (?, ?, ?)",
                (key, _now(), int(is_correct)),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to log review for {key}: {e}")
            raise RecordFailure(key, str(e)) from e

    def get_review_history(self, key: str, limit: int = 10) -> list[ReviewRecord]:
        """Most recent answers for a word, newest first."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT * FROM review_log
            WHERE item_key = ?
            ORDER BY id DESC
            LIMIT ?
        """,
            (key, limit),
        )

        return [
            ReviewRecord(
                id=row["id"],
                item_key=row["item_key"],
                reviewed_at=_parse(row["reviewed_at"]),
                is_correct=bool(row["is_correct"]),
            )
            for row in cursor.fetchall()
        ]

    # =========================================================================
    # Remaining Count
    # =========================================================================

    def notify_remaining_count(self, count: int) -> None:
        self.set_remaining_count(count)

    def set_remaining_count(self, count: int) -> None:
        self.conn.execute(
            """
            INSERT INTO meta (name, value) VALUES ('remaining_count', ?)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value
        """,
            (str(count),),
        )
        self.conn.commit()

    def get_remaining_count(self) -> int:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM meta WHERE name = 'remaining_count'")
        row = cursor.fetchone()
        return int(row["value"]) if row else 0

    # =========================================================================
    # Session Operations
    # =========================================================================

    def start_session(self) -> int:
        """
        Start a new review session.

        Returns:
            Session ID
        """
        cursor = self.conn.cursor()
        cursor.execute("INSERT INTO session_history (started_at) VALUES (?)", (_now(),))
        self.conn.commit()
        return cursor.lastrowid

    def end_session(self, session_id: int, stats: SessionStats) -> None:
        """Close a session with its final counters."""
        self.conn.execute(
            """
            UPDATE session_history SET
                ended_at = ?,
                correct = ?,
                incorrect = ?,
                retention = ?
            WHERE id = ?
        """,
            (_now(), stats.correct, stats.incorrect, stats.retention, session_id),
        )
        self.conn.commit()

    def get_session_history(self, limit: int = 30) -> list[SessionRecord]:
        """Get recent session history."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT * FROM session_history
            ORDER BY id DESC
            LIMIT ?
        """,
            (limit,),
        )

        return [
            SessionRecord(
                id=row["id"],
                started_at=_parse(row["started_at"]),
                ended_at=_parse(row["ended_at"]),
                correct=row["correct"],
                incorrect=row["incorrect"],
                retention=row["retention"],
            )
            for row in cursor.fetchall()
        ]

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self) -> dict:
        """
        Get overall review statistics.

        Returns:
            Dictionary with aggregate stats
        """
        cursor = self.conn.cursor()

        cursor.execute("SELECT COUNT(*) AS cnt FROM items")
        total_items = cursor.fetchone()["cnt"]

        cursor.execute("SELECT state, COUNT(*) AS cnt FROM items GROUP BY state")
        by_state = {row["state"]: row["cnt"] for row in cursor.fetchall()}

        cursor.execute("SELECT COUNT(*) AS cnt, SUM(is_correct) AS ok FROM review_log")
        row = cursor.fetchone()
        total_reviews = row["cnt"]
        correct = row["ok"] or 0

        cursor.execute("SELECT COUNT(*) AS cnt FROM session_history WHERE ended_at IS NOT NULL")
        sessions = cursor.fetchone()["cnt"]

        return {
            "total_items": total_items,
            "items_due": self.count_due_items(),
            "by_state": by_state,
            "total_reviews": total_reviews,
            "retention_rate_percent": round(correct * 100.0 / total_reviews, 1)
            if total_reviews
            else 0.0,
            "sessions_completed": sessions,
            "remaining_count": self.get_remaining_count(),
        }

    def reset(self, backup: bool = True) -> int:
        """
        Delete all words, reviews and sessions.

        Args:
            backup: Export everything to a JSON file next to the database first

        Returns:
            Number of words deleted
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT COUNT(*) AS cnt FROM items")
        count = cursor.fetchone()["cnt"]

        if backup:
            self._write_backup()

        cursor.execute("DELETE FROM review_log")
        cursor.execute("DELETE FROM items")
        cursor.execute("DELETE FROM session_history")
        cursor.execute("DELETE FROM meta")
        self.conn.commit()

        logger.info(f"Reset complete: {count} words deleted")
        return count

    def _write_backup(self) -> Path:
        backup_dir = self.db_path.parent / "backups"
        backup_dir.mkdir(exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_file = backup_dir / f"review_backup_{timestamp}.json"

        cursor = self.conn.cursor()
        backup = {"timestamp": timestamp}
        for table in ("items", "review_log", "session_history"):
            cursor.execute(f"SELECT * FROM {table}")
            backup[table] = [dict(row) for row in cursor.fetchall()]

        with open(backup_file, "w", encoding="utf-8") as f:
            json.dump(backup, f, indent=2, ensure_ascii=False)
        logger.info(f"Backup saved: {backup_file}")
        return backup_file

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
