"""
LangGraph Workflow — defines the agent graph for one batch invocation.

Graph structure:
    planner → extractor → parser → filter → dedup → [loop?] → formatter

The graph loops back from dedup to the extractor while units remain in the
batch, so every unit is fully processed before the next one starts. An
empty batch goes straight from the planner to the formatter.
"""

import logging

from langgraph.graph import StateGraph, END

from agents.dedup import dedup_agent
from agents.extractor import extractor_agent
from agents.filter import filter_agent
from agents.formatter import formatter_agent
from agents.parser import parser_agent
from agents.planner import planner_agent
from graph.context import ScrapeContext
from models.search import ScrapeRequest, ScrapeResponse, SearchConfig
from models.state import ScrapeState
from tools.file_handler import load_search_config


logger = logging.getLogger(__name__)

# Nodes visited per unit (extractor, parser, filter, dedup, advance)
STEPS_PER_UNIT = 5


def has_units(state: ScrapeState) -> str:
    """Conditional edge after planning: an empty batch has nothing to extract."""
    return "extractor" if state.get("batch_units") else "formatter"


def should_continue(state: ScrapeState) -> str:
    """
    Conditional edge: decide whether to process the next unit or finish.

    Returns:
        'advance' if more units remain, 'formatter' if the batch is done.
    """
    batch_units = state.get("batch_units", [])
    current_index = state.get("current_unit_index", 0)

    if current_index < len(batch_units) - 1:
        return "advance"
    return "formatter"


def advance_to_next_unit(state: ScrapeState) -> dict:
    """
    Transition node: advance to the next search unit in the batch.
    Resets per-unit state so the next unit starts fresh.
    """
    batch_units = state.get("batch_units", [])
    next_index = state.get("current_unit_index", 0) + 1

    if next_index < len(batch_units):
        logger.info("[Workflow] Moving to search %d/%d", next_index + 1, len(batch_units))
        return {
            "current_unit_index": next_index,
            "current_unit": batch_units[next_index],
            "payloads": [],
            "parsed_jobs": [],
            "eligible_jobs": [],
        }

    return {}


def build_workflow():
    """
    Build and compile the LangGraph workflow.

    Returns:
        Compiled StateGraph ready to invoke.
    """
    # Create the graph
    workflow = StateGraph(ScrapeState)

    # Add nodes (one per pipeline stage, plus the loop step)
    workflow.add_node("planner", planner_agent)
    workflow.add_node("extractor", extractor_agent)
    workflow.add_node("parser", parser_agent)
    workflow.add_node("filter", filter_agent)
    workflow.add_node("dedup", dedup_agent)
    workflow.add_node("advance", advance_to_next_unit)
    workflow.add_node("formatter", formatter_agent)

    # Define edges (execution flow)
    workflow.set_entry_point("planner")

    # Planner → conditional: any units? → extractor  OR  → formatter
    workflow.add_conditional_edges(
        "planner",
        has_units,
        {
            "extractor": "extractor",
            "formatter": "formatter",
        },
    )

    # Extractor → Parser → Filter → Dedup
    workflow.add_edge("extractor", "parser")
    workflow.add_edge("parser", "filter")
    workflow.add_edge("filter", "dedup")

    # Dedup → conditional: more units? → advance → extractor  OR  → formatter
    workflow.add_conditional_edges(
        "dedup",
        should_continue,
        {
            "advance": "advance",
            "formatter": "formatter",
        },
    )

    # Advance → Extractor (loop back)
    workflow.add_edge("advance", "extractor")

    # Formatter → END
    workflow.add_edge("formatter", END)

    # Compile and return
    return workflow.compile()


# Pre-built graph instance
graph = build_workflow()


def initial_state(search_config: SearchConfig, batch_index: int, batch_size: int) -> ScrapeState:
    return {
        "search_config": search_config,
        "batch_index": batch_index,
        "batch_size": batch_size,
        "total_units": 0,
        "batch_units": [],
        "current_unit_index": 0,
        "current_unit": None,
        "payloads": [],
        "parsed_jobs": [],
        "eligible_jobs": [],
        "total_found": 0,
        "inserted": 0,
        "skipped": 0,
        "stale": 0,
        "failed": 0,
        "response": {},
        "errors": [],
    }


def run_batch(request: ScrapeRequest, context: ScrapeContext) -> ScrapeResponse:
    """
    Run one batch: plan the window for request.batch_index, process each unit,
    and report counters plus the cursor for the next call.

    Raises:
        ConfigurationError: if required settings are missing or the search config is invalid.
    """
    settings = context.settings
    settings.validate()

    # Request lists win; the YAML file (or built-in defaults) fills the gaps
    fallback = load_search_config(settings.search_config_path)
    search_config = request.search_config(fallback)
    batch_size = settings.batch_size

    # Five nodes per unit, plus headroom for planner and formatter
    result = graph.invoke(
        initial_state(search_config, request.batch_index, batch_size),
        config={
            "configurable": {"context": context},
            "recursion_limit": STEPS_PER_UNIT * batch_size + 10,
        },
    )
    return ScrapeResponse.model_validate(result["response"])
