"""
Formatter Agent — turns the run counters into the batch response.
No LLM needed. Runs once, after the last unit of the batch (or straight after
the planner when the batch is empty).
"""

import logging

from agents.planner import total_batches
from models.search import ScrapeResponse
from models.state import ScrapeState


logger = logging.getLogger(__name__)


def _progress(batch_index: int, batch_size: int, total_units: int) -> str:
    batches = total_batches(total_units, batch_size)
    done = min((batch_index + 1) * batch_size, total_units)
    if batch_index >= batches:
        return f"All {total_units} searches complete"
    return f"Batch {batch_index + 1} of {batches} ({done}/{total_units} searches)"


def formatter_agent(state: ScrapeState) -> dict:
    """
    Build the response: counters, whether more batches remain, and the
    cursor to resume with.
    """
    batch_index = state.get("batch_index", 0)
    batch_size = state.get("batch_size", 1)
    total_units = state.get("total_units", 0)

    has_more = (batch_index + 1) * batch_size < total_units

    response = ScrapeResponse(
        inserted=state.get("inserted", 0),
        skipped=state.get("skipped", 0),
        total_found=state.get("total_found", 0),
        has_more=has_more,
        next_batch_index=batch_index + 1 if has_more else None,
        progress=_progress(batch_index, batch_size, total_units),
    )

    logger.info(
        "[Formatter] %s: found %d, inserted %d, skipped %d, stale %d, failed %d",
        response.progress,
        response.total_found,
        response.inserted,
        response.skipped,
        state.get("stale", 0),
        state.get("failed", 0),
    )
    errors = state.get("errors", [])
    if errors:
        logger.warning("[Formatter] %d error(s) during this batch", len(errors))

    return {"response": response.to_payload()}
