"""
Supabase Job Store — persistence through the Supabase (PostgREST) API.

Same interface as the SQLite store. Writes go through an upsert on the
(external_id, source) conflict target, so concurrent runs racing on the
same key converge on one row without erroring.
"""

from typing import Iterable, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from models.job import CanonicalJobRecord
from tools.job_store import ALLOWED_SOURCES, StorageError


CONFLICT_TARGET = "external_id,source"


class SupabaseJobStore:
    """Persistence for scraped jobs in the hosted `jobs` table."""

    def __init__(self, url: str = "", service_role_key: str = "", table: str = "jobs", client: Optional[Client] = None):
        self.table = table
        self.client = client or create_client(url, service_role_key)

    def exists(self, external_id: str, source: Optional[str] = None) -> bool:
        query = self.client.table(self.table).select("id").eq("external_id", external_id)
        if source is not None:
            query = query.eq("source", source)

        try:
            result = query.limit(1).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Lookup failed for {external_id!r}: {e}") from e
        return bool(result.data)

    def insert(self, record: CanonicalJobRecord) -> bool:
        """Insert-or-ignore; True only when a new row was created."""
        try:
            result = (
                self.client.table(self.table)
                .upsert(record.to_row(), on_conflict=CONFLICT_TARGET, ignore_duplicates=True)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Insert failed for {record.external_id!r}: {e}") from e
        return bool(result.data)

    def upsert(self, records: Iterable[CanonicalJobRecord]) -> int:
        rows = [record.to_row() for record in records]
        if not rows:
            return 0
        try:
            result = self.client.table(self.table).upsert(rows, on_conflict=CONFLICT_TARGET).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Upsert failed: {e}") from e
        return len(result.data or [])

    def recent_jobs(self, sources: Iterable[str] = ALLOWED_SOURCES, limit: int = 100) -> list[dict]:
        sources = list(sources)
        if not sources:
            return []
        try:
            result = (
                self.client.table(self.table)
                .select("*")
                .in_("source", sources)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Listing jobs failed: {e}") from e
        return list(result.data or [])

    def count(self) -> int:
        try:
            result = self.client.table(self.table).select("id", count="exact").limit(1).execute()
        except (APIError, httpx.HTTPError) as e:
            raise StorageError(f"Count failed: {e}") from e
        return result.count or 0
