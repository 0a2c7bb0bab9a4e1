"""SQLite cache of passing results keyed by snippet content."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from guidecheck.core.constants import ValidationStatus
from guidecheck.core.exceptions import StoreError

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS block_results (
    content_hash TEXT NOT NULL,
    fingerprint TEXT NOT NULL,
    language TEXT NOT NULL,
    status TEXT NOT NULL,
    message TEXT NOT NULL,
    output TEXT,
    location TEXT,
    validated_at TEXT NOT NULL,
    PRIMARY KEY (content_hash, fingerprint)
);

CREATE INDEX IF NOT EXISTS idx_block_results_hash ON block_results(content_hash);
"""


class ResultCache:
    """Remembers which snippets already passed so unchanged ones can be skipped."""

    def __init__(self, db_path: Path) -> None:
        """Initialize cache with database path."""
        self._db_path = db_path
        self._connection: sqlite3.Connection | None = None

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper setup."""
        if self._connection is None:
            self._connection = self._create_connection()
        yield self._connection

    def _create_connection(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the schema if needed."""
        try:
            with self._get_connection() as conn:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize result cache: {e}", operation="initialize") from e

    def get(self, content_hash: str, fingerprint: str) -> dict[str, Any] | None:
        """Cached passing result for a snippet, if any."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM block_results WHERE content_hash = ? AND fingerprint = ?",
                    (content_hash, fingerprint),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read result cache: {e}", operation="get") from e
        return dict(row) if row else None

    def put(
        self,
        content_hash: str,
        fingerprint: str,
        language: str,
        status: ValidationStatus,
        message: str,
        output: str | None = None,
        location: str | None = None,
    ) -> None:
        """Store a result; anything but a pass removes the entry instead."""
        try:
            with self._get_connection() as conn:
                if status != ValidationStatus.PASSED:
                    conn.execute(
                        "DELETE FROM block_results WHERE content_hash = ? AND fingerprint = ?",
                        (content_hash, fingerprint),
                    )
                else:
                    conn.execute(
                        """
                        INSERT OR REPLACE INTO block_results
                            (content_hash, fingerprint, language, status, message,
                             output, location, validated_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            content_hash,
                            fingerprint,
                            language,
                            status.value,
                            message,
                            output,
                            location,
                            datetime.now().isoformat(),
                        ),
                    )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write result cache: {e}", operation="put") from e

    def prune(self, keep_hashes: set[str]) -> int:
        """Delete entries for snippets that no longer exist."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute("SELECT DISTINCT content_hash FROM block_results").fetchall()
                stale = [row["content_hash"] for row in rows if row["content_hash"] not in keep_hashes]
                conn.executemany(
                    "DELETE FROM block_results WHERE content_hash = ?",
                    [(h,) for h in stale],
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to prune result cache: {e}", operation="prune") from e
        return len(stale)

    def clear(self) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM block_results")
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to clear result cache: {e}", operation="clear") from e

    def stats(self) -> dict[str, Any]:
        """Entry counts per language."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT language, COUNT(*) AS n FROM block_results GROUP BY language"
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read result cache: {e}", operation="stats") from e
        by_language = {row["language"]: row["n"] for row in rows}
        return {
            "db_path": str(self._db_path),
            "entries": sum(by_language.values()),
            "by_language": by_language,
        }

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
