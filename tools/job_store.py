"""
Job Store — SQLite-backed persistence of canonical job records.

The `jobs` table is unique on (external_id, source); inserts use that pair as
the conflict target so re-running the pipeline never duplicates a row.
Used for local runs and tests; production runs use the Supabase store.
"""

import os
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional

from models.job import CanonicalJobRecord


ALLOWED_SOURCES = (
    "Indeed", "LinkedIn", "ZipRecruiter", "Glassdoor", "Monster",
    "SimplyHired", "CareerBuilder", "FlexJobs", "Built In", "Ladders",
    "Remote.co", "DailyRemote", "Workday", "Upwork",
)

COLUMNS = (
    "title", "company", "location", "location_type", "employment_type", "salary",
    "description", "apply_url", "source", "external_id", "category", "posted_at",
)


class StorageError(Exception):
    """A storage read or write failed."""


class SQLiteJobStore:
    """Persistence for scraped jobs in a local SQLite file."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a SQLite connection, creating the database directory if needed."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the jobs table if it doesn't exist."""
        try:
            conn = self._get_connection()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open job store at {self.db_path}: {e}") from e
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    company TEXT NOT NULL,
                    location TEXT NOT NULL,
                    location_type TEXT NOT NULL,
                    employment_type TEXT NOT NULL,
                    salary TEXT,
                    description TEXT,
                    apply_url TEXT,
                    source TEXT NOT NULL,
                    external_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    posted_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (external_id, source)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs(created_at)
            """)
            conn.commit()
        finally:
            conn.close()

    def exists(self, external_id: str, source: Optional[str] = None) -> bool:
        """True if a row with this external id (scoped to source, when given) is stored."""
        query = "SELECT 1 FROM jobs WHERE external_id = ?"
        params = [external_id]
        if source is not None:
            query += " AND source = ?"
            params.append(source)

        try:
            conn = self._get_connection()
            try:
                return conn.execute(query + " LIMIT 1", params).fetchone() is not None
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Lookup failed for {external_id!r}: {e}") from e

    def insert(self, record: CanonicalJobRecord) -> bool:
        """
        Insert a record, ignoring conflicts on (external_id, source).

        Returns:
            True if a new row was written, False if it already existed.
        """
        row = record.to_row()
        now = datetime.now(timezone.utc).isoformat()
        placeholders = ", ".join("?" for _ in COLUMNS)

        try:
            conn = self._get_connection()
            try:
                cursor = conn.execute(
                    f"INSERT INTO jobs ({', '.join(COLUMNS)}, created_at, updated_at) "
                    f"VALUES ({placeholders}, ?, ?) "
                    f"ON CONFLICT (external_id, source) DO NOTHING",
                    [row[column] for column in COLUMNS] + [now, now],
                )
                conn.commit()
                return cursor.rowcount == 1
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Insert failed for {record.external_id!r}: {e}") from e

    def upsert(self, records: Iterable[CanonicalJobRecord]) -> int:
        """
        Insert or refresh records on the (external_id, source) conflict target.

        Returns:
            Number of rows written (new or updated).
        """
        now = datetime.now(timezone.utc).isoformat()
        updates = ", ".join(
            f"{column} = excluded.{column}" for column in COLUMNS if column not in ("external_id", "source")
        )
        placeholders = ", ".join("?" for _ in COLUMNS)
        written = 0

        try:
            conn = self._get_connection()
            try:
                for record in records:
                    row = record.to_row()
                    cursor = conn.execute(
                        f"INSERT INTO jobs ({', '.join(COLUMNS)}, created_at, updated_at) "
                        f"VALUES ({placeholders}, ?, ?) "
                        f"ON CONFLICT (external_id, source) DO UPDATE SET {updates}, updated_at = excluded.updated_at",
                        [row[column] for column in COLUMNS] + [now, now],
                    )
                    written += cursor.rowcount
                conn.commit()
                return written
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Upsert failed: {e}") from e

    def recent_jobs(self, sources: Iterable[str] = ALLOWED_SOURCES, limit: int = 100) -> list[dict]:
        """Stored rows from the given sources, newest first."""
        sources = list(sources)
        if not sources:
            return []
        placeholders = ", ".join("?" for _ in sources)

        try:
            conn = self._get_connection()
            try:
                rows = conn.execute(
                    f"SELECT * FROM jobs WHERE source IN ({placeholders}) "
                    f"ORDER BY created_at DESC, id DESC LIMIT ?",
                    sources + [limit],
                ).fetchall()
                return [dict(row) for row in rows]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Listing jobs failed: {e}") from e

    def count(self) -> int:
        """Return total number of stored jobs."""
        try:
            conn = self._get_connection()
            try:
                return conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Count failed: {e}") from e
