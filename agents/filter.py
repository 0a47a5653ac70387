"""
Filter Agent — drops records that have no identity or are too old.
No LLM needed.
"""

import logging

from langchain_core.runnables import RunnableConfig

from graph.context import get_context
from models.state import ScrapeState
from tools.recency import is_eligible


logger = logging.getLogger(__name__)


def filter_agent(state: ScrapeState, config: RunnableConfig) -> dict:
    """
    Keep records with an external id whose posting age is inside the
    recency window.
    """
    context = get_context(config)
    window_days = context.settings.recency_window_days
    parsed_jobs = state.get("parsed_jobs", [])

    eligible_jobs = []
    stale = 0

    for job in parsed_jobs:
        if not job.external_id:
            logger.info("[Filter] Dropping job without identity: %s", job.title)
            continue
        if not is_eligible(job.posted_text, window_days=window_days):
            stale += 1
            continue
        eligible_jobs.append(job)

    if stale:
        logger.info("[Filter] Filtered out %d jobs older than the %d-day window", stale, window_days)

    return {
        "eligible_jobs": eligible_jobs,
        "stale": stale,
    }
