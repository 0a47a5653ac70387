"""
LangGraph Agent State — shared state that flows through one batch invocation.
"""

import operator
from typing import Annotated, Optional, TypedDict
from models.job import CanonicalJobRecord
from models.payloads import RawPayload
from models.search import SearchConfig, SearchUnit


def merge_lists(left: list, right: list) -> list:
    """Reducer that merges two lists (used for accumulating results across loop iterations)."""
    return left + right


class ScrapeState(TypedDict):
    """
    Shared state for the LangGraph workflow.
    Counters use additive reducers: nodes return increments, not totals.
    """

    # Input
    search_config: SearchConfig
    batch_index: int
    batch_size: int

    # Planner output: the window of search units for this invocation
    total_units: int
    batch_units: list[SearchUnit]

    # Loop control
    current_unit_index: int
    current_unit: Optional[SearchUnit]

    # Per-unit pipeline values, reset between units
    payloads: list[RawPayload]
    parsed_jobs: list[CanonicalJobRecord]
    eligible_jobs: list[CanonicalJobRecord]

    # Run counters
    total_found: Annotated[int, operator.add]
    inserted: Annotated[int, operator.add]
    skipped: Annotated[int, operator.add]
    stale: Annotated[int, operator.add]
    failed: Annotated[int, operator.add]

    # Formatter output
    response: dict

    # Accumulated errors during processing
    errors: Annotated[list[str], merge_lists]
