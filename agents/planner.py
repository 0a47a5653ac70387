"""
Planner Agent — enumerates the search space and picks this invocation's batch.
This is a deterministic agent: the same config and batch index always select
the same search units.
"""

import logging
from models.search import SearchConfig, SearchUnit
from models.state import ScrapeState


logger = logging.getLogger(__name__)


def slice_batch(units: list[SearchUnit], batch_index: int, batch_size: int) -> list[SearchUnit]:
    """The batch_index-th window of batch_size units; empty past the end."""
    start = batch_index * batch_size
    return units[start:start + batch_size]


def total_batches(total_units: int, batch_size: int) -> int:
    return (total_units + batch_size - 1) // batch_size


def planner_agent(state: ScrapeState) -> dict:
    """
    Build the ordered (location × term) list and slice the window for
    state['batch_index'].
    """
    search_config = state.get("search_config") or SearchConfig()
    batch_index = state.get("batch_index", 0)
    batch_size = state.get("batch_size", 1)

    units = search_config.units()
    batch_units = slice_batch(units, batch_index, batch_size)

    if batch_units:
        logger.info(
            "[Planner] Batch %d/%d: %d of %d searches",
            batch_index + 1,
            total_batches(len(units), batch_size),
            len(batch_units),
            len(units),
        )
        for unit in batch_units:
            logger.info("[Planner]   - %s", unit.query)
    else:
        logger.info("[Planner] Batch %d is past the end of %d searches; nothing to do", batch_index + 1, len(units))

    return {
        "total_units": len(units),
        "batch_units": batch_units,
        "current_unit_index": 0,
        "current_unit": batch_units[0] if batch_units else None,
    }
