"""Shared SQLite metadata helpers for the vector store."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from f1gpt.config import config

logger = config.get_logger(__name__)


class BaseSQLiteStore:
    """Schema management and lookups for passage metadata kept in SQLite."""

    def __init__(self, db_path: Path) -> None:
        """Initialize metadata store and ensure schema exists."""
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        """Create source and passage tables if they don't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sources (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL UNIQUE,
                    processed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS passages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_id INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    length INTEGER,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (source_id) REFERENCES sources (id)
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_passages_source ON passages(source_id)",
            )
            conn.commit()

    @staticmethod
    def _upsert_source(cursor: sqlite3.Cursor, url: str) -> int:
        """Insert source metadata if missing and return its id.

        Raises:
            RuntimeError: If the source id cannot be retrieved.

        Returns:
            Source id from the metadata store.
        """
        cursor.execute("INSERT OR IGNORE INTO sources (url) VALUES (?)", (url,))
        cursor.execute("SELECT id FROM sources WHERE url = ?", (url,))
        row = cursor.fetchone()
        if row is None:
            msg = f"Failed to upsert source '{url}'"
            raise RuntimeError(msg)
        return int(row[0])

    @staticmethod
    def _insert_passage_row(cursor: sqlite3.Cursor, source_id: int, text: str) -> int:
        """Persist a passage row and return its id, used as the vector id.

        Raises:
            RuntimeError: If the passage row cannot be inserted.

        Returns:
            Row id of the inserted passage.
        """
        cursor.execute(
            "INSERT INTO passages (source_id, content, length) VALUES (?, ?, ?)",
            (source_id, text, len(text)),
        )
        row_id = cursor.lastrowid
        if row_id is None:
            msg = "Failed to insert passage row"
            raise RuntimeError(msg)
        return int(row_id)

    @staticmethod
    def _fetch_passage(cursor: sqlite3.Cursor, vector_id: int) -> tuple[str, str] | None:
        """Fetch ``(content, url)`` for a vector id.

        Returns:
            Tuple of passage text and source url if found; otherwise None.
        """
        cursor.execute(
            """
            SELECT p.content, s.url
            FROM passages p
            JOIN sources s ON p.source_id = s.id
            WHERE p.id = ?
            """,
            (int(vector_id),),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return str(row[0]), str(row[1])

    def exists_by_source_url(self, url: str) -> bool:
        """Check whether any passage from ``url`` has been stored.

        Returns:
            True if the source url has at least one stored passage.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1
                FROM passages p
                JOIN sources s ON p.source_id = s.id
                WHERE s.url = ?
                LIMIT 1
                """,
                (url,),
            )
            return cursor.fetchone() is not None

    def count(self) -> int:
        """Number of stored passages.

        Returns:
            Row count of the passages table.
        """
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM passages")
            return int(cursor.fetchone()[0])
