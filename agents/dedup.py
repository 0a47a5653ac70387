"""
Dedup Agent — checks persisted state for each eligible record and stores the
new ones. No LLM needed.
"""

import logging

from langchain_core.runnables import RunnableConfig

from graph.context import get_context
from models.state import ScrapeState
from tools.job_store import StorageError


logger = logging.getLogger(__name__)


def dedup_agent(state: ScrapeState, config: RunnableConfig) -> dict:
    """
    Skip records whose (external_id, source) is already stored, insert the rest.

    - A record already present counts as skipped
    - An insert that loses a race on the same key also counts as skipped
    - A storage failure drops the record (neither inserted nor skipped)
    """
    store = get_context(config).store
    eligible_jobs = state.get("eligible_jobs", [])

    inserted = 0
    skipped = 0
    failed = 0
    errors = []
    seen = set()

    for job in eligible_jobs:
        if job.dedup_key() in seen:
            logger.info("[Dedup] Skipping repeat within search: %s (%s)", job.title, job.source)
            skipped += 1
            continue
        seen.add(job.dedup_key())

        try:
            if store.exists(job.external_id, job.source):
                logger.info("[Dedup] Skipping duplicate: %s (%s)", job.title, job.source)
                skipped += 1
                continue

            if store.insert(job):
                logger.info("[Dedup] Inserted job: %s at %s", job.title, job.company)
                inserted += 1
            else:
                logger.info("[Dedup] Skipping duplicate on insert: %s (%s)", job.title, job.source)
                skipped += 1
        except StorageError as e:
            logger.error("[Dedup] Storage error for %s: %s", job.external_id, e)
            failed += 1
            errors.append(f"Storage error for {job.external_id!r}: {e}")

    return {
        "inserted": inserted,
        "skipped": skipped,
        "failed": failed,
        "errors": errors,
    }
