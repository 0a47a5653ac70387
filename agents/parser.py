"""
Parser Agent — turns the current unit's raw payloads into canonical records.
Deterministic pattern matching, no LLM: each payload kind has one strategy
in tools.parsers.
"""

import logging

from langchain_core.runnables import RunnableConfig

from graph.context import get_context
from models.state import ScrapeState
from tools.parsers import ParseOptions, parse_payload


logger = logging.getLogger(__name__)


def parser_agent(state: ScrapeState, config: RunnableConfig) -> dict:
    """
    Parse every payload for the current unit and count what was found.
    """
    context = get_context(config)
    unit = state.get("current_unit")
    payloads = state.get("payloads", [])

    if not payloads:
        return {"parsed_jobs": [], "total_found": 0}

    options = ParseOptions(
        search_location=unit.location if unit else None,
        description_max_length=context.settings.description_max_length,
        category=context.settings.job_category,
    )

    parsed_jobs = []
    for payload in payloads:
        parsed_jobs.extend(parse_payload(payload, options))

    logger.info("[Parser] %d jobs parsed from %d payload(s)", len(parsed_jobs), len(payloads))

    return {
        "parsed_jobs": parsed_jobs,
        "total_found": len(parsed_jobs),
    }
