"""
SQLite Card Store.

Local persistence for:
- Flashcards (one JSON document per card)
- Exam history (append-only)
- Card ids still waiting for a remote write

Database location: ~/.growfluent/state.db
"""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path

from loguru import logger

from growfluent.srs.models import Card, ExamReport, Language

from .base import CardStore


class SQLiteCardStore(CardStore):
    """
    SQLite-backed card store.

    Each row keeps the full card document plus the columns needed for
    filtering and ordering.
    """

    DEFAULT_DB_PATH = Path.home() / ".growfluent" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the store.

        Args:
            db_path: Custom database path (defaults to ~/.growfluent/state.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._init_schema()

        logger.info(f"SQLiteCardStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._lock:
            cursor = self.conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS flashcards (
                    id TEXT PRIMARY KEY,
                    language TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    next_review_at INTEGER NOT NULL,
                    document TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS exam_history (
                    id TEXT PRIMARY KEY,
                    language TEXT NOT NULL,
                    date INTEGER NOT NULL,
                    document TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS pending_sync (
                    card_id TEXT PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_flashcards_language
                ON flashcards(language, created_at)
            """)

            self.conn.commit()

    # =========================================================================
    # Cards
    # =========================================================================

    def load_cards(self, language: Language | None = None) -> list[Card]:
        with self._lock:
            cursor = self.conn.cursor()
            if language is None:
                cursor.execute("SELECT document FROM flashcards ORDER BY created_at DESC")
            else:
                cursor.execute(
                    "SELECT document FROM flashcards WHERE language = ? ORDER BY created_at DESC",
                    (language.value,),
                )
            rows = cursor.fetchall()
        return [Card.from_dict(json.loads(row["document"])) for row in rows]

    def get_card(self, card_id: str) -> Card | None:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT document FROM flashcards WHERE id = ?", (card_id,))
            row = cursor.fetchone()
        return Card.from_dict(json.loads(row["document"])) if row else None

    def upsert_card(self, card: Card) -> None:
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO flashcards (id, language, created_at, next_review_at, document)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    language = excluded.language,
                    created_at = excluded.created_at,
                    next_review_at = excluded.next_review_at,
                    document = excluded.document
            """,
                (
                    card.id,
                    card.language.value,
                    card.created_at,
                    card.next_review_at,
                    json.dumps(card.to_dict()),
                ),
            )
            self.conn.commit()

    def delete_card(self, card_id: str) -> None:
        with self._lock:
            self.conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
            self.conn.commit()

    def count_cards(self, language: Language | None = None) -> int:
        with self._lock:
            cursor = self.conn.cursor()
            if language is None:
                cursor.execute("SELECT COUNT(*) AS cnt FROM flashcards")
            else:
                cursor.execute(
                    "SELECT COUNT(*) AS cnt FROM flashcards WHERE language = ?",
                    (language.value,),
                )
            return cursor.fetchone()["cnt"]

    def load_pending_ids(self) -> set[str]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT card_id FROM pending_sync")
            return {row["card_id"] for row in cursor.fetchall()}

    def mark_pending(self, card_id: str, pending: bool) -> None:
        with self._lock:
            if pending:
                self.conn.execute(
                    "INSERT OR IGNORE INTO pending_sync (card_id) VALUES (?)", (card_id,)
                )
            else:
                self.conn.execute("DELETE FROM pending_sync WHERE card_id = ?", (card_id,))
            self.conn.commit()

    # =========================================================================
    # Exam History
    # =========================================================================

    def load_exam_history(self) -> list[ExamReport]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT document FROM exam_history ORDER BY date DESC")
            rows = cursor.fetchall()
        return [ExamReport.from_dict(json.loads(row["document"])) for row in rows]

    def append_exam_report(self, report: ExamReport) -> None:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR IGNORE INTO exam_history (id, language, date, document)
                VALUES (?, ?, ?, ?)
            """,
                (report.id, report.language.value, report.date, json.dumps(report.to_dict())),
            )
            self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
