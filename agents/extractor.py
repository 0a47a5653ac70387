"""
Extractor Agent — fetches raw payloads for the current search unit.
Supports four modes, chosen by settings.extraction_strategy:
  1. job_search — structured results from the JSearch API
  2. extract    — Firecrawl schema extraction of the Indeed search page
  3. markdown   — Firecrawl markdown of the Indeed search page
  4. links      — harvest posting links from the search page, then fetch
                  each posting as markdown

A failed call yields zero payloads for the unit; it never aborts the batch.
"""

import logging

from langchain_core.runnables import RunnableConfig
from pydantic import ValidationError

from graph.context import ScrapeContext, get_context
from models.payloads import ExtractionResult, JobLink, JobSearchResults, JsonExtraction, LinkList, MarkdownExtraction
from models.search import SearchUnit
from models.state import ScrapeState
from tools.api_fetcher import build_indeed_search_url, firecrawl_extract_jobs, firecrawl_scrape, search_jsearch
from tools.parsers import select_posting_links
from tools.text_extractor import extract_links


logger = logging.getLogger(__name__)


def _failed(error: str) -> ExtractionResult:
    return ExtractionResult(success=False, error=error)


def extract_job_search(unit: SearchUnit, context: ScrapeContext) -> ExtractionResult:
    settings = context.settings
    context.throttle()
    result = search_jsearch(
        unit.query,
        settings.rapidapi_key,
        host=settings.jsearch_host,
        timeout=settings.request_timeout,
        client=context.http_client,
    )
    if not result["success"]:
        return _failed(result["error"])

    jobs = result["data"].get("data") or []
    if not isinstance(jobs, list):
        jobs = []
    jobs = [job for job in jobs if isinstance(job, dict)]
    return ExtractionResult(payloads=[JobSearchResults(jobs=jobs, query=unit.query)])


def extract_schema(unit: SearchUnit, context: ScrapeContext) -> ExtractionResult:
    settings = context.settings
    search_url = build_indeed_search_url(unit.term, unit.location)
    context.throttle()
    result = firecrawl_extract_jobs(
        search_url,
        settings.firecrawl_api_key,
        timeout=settings.request_timeout,
        client=context.http_client,
    )
    if not result["success"]:
        return _failed(result["error"])

    extract = result["data"].get("extract") or result["data"].get("json") or {}
    jobs = extract.get("jobs") if isinstance(extract, dict) else None
    if not isinstance(jobs, list):
        jobs = []
    jobs = [job for job in jobs if isinstance(job, dict)]
    return ExtractionResult(payloads=[JsonExtraction(jobs=jobs, source_url=search_url)])


def _markdown_payload(document: dict, url: str) -> MarkdownExtraction:
    metadata = document.get("metadata") if isinstance(document.get("metadata"), dict) else {}
    return MarkdownExtraction(
        markdown=document.get("markdown") or "",
        metadata=metadata,
        html=document.get("html") or "",
        source_url=url,
    )


def extract_markdown(unit: SearchUnit, context: ScrapeContext) -> ExtractionResult:
    settings = context.settings
    search_url = build_indeed_search_url(unit.term, unit.location)
    context.throttle()
    result = firecrawl_scrape(
        search_url,
        settings.firecrawl_api_key,
        ["markdown"],
        timeout=settings.request_timeout,
        client=context.http_client,
    )
    if not result["success"]:
        return _failed(result["error"])
    return ExtractionResult(payloads=[_markdown_payload(result["data"], search_url)])


def extract_links_then_pages(unit: SearchUnit, context: ScrapeContext) -> ExtractionResult:
    settings = context.settings
    search_url = build_indeed_search_url(unit.term, unit.location)
    context.throttle()
    result = firecrawl_scrape(
        search_url,
        settings.firecrawl_api_key,
        ["links", "html"],
        timeout=settings.request_timeout,
        client=context.http_client,
    )
    if not result["success"]:
        return _failed(result["error"])

    document = result["data"]
    links = extract_links(document.get("html") or "", search_url)
    known = {link.url for link in links}
    links.extend(
        JobLink(url=url) for url in document.get("links") or [] if isinstance(url, str) and url not in known
    )
    link_list = LinkList(links=links, source_url=search_url)
    postings = select_posting_links(link_list.links, search_url, limit=settings.max_links_per_search)
    logger.info("[Extractor] %d posting links among %d links for %s", len(postings), len(link_list.links), unit.query)

    if not settings.fetch_link_details:
        return ExtractionResult(payloads=[link_list])

    payloads = []
    for posting in postings:
        context.throttle()
        page = firecrawl_scrape(
            posting.url,
            settings.firecrawl_api_key,
            ["markdown", "html"],
            timeout=settings.request_timeout,
            client=context.http_client,
        )
        if not page["success"]:
            logger.warning("[Extractor] Posting fetch failed (%s): %s", posting.url, page["error"])
            continue
        payloads.append(_markdown_payload(page["data"], posting.url))

    return ExtractionResult(payloads=payloads)


EXTRACTORS = {
    "job_search": extract_job_search,
    "extract": extract_schema,
    "markdown": extract_markdown,
    "links": extract_links_then_pages,
}


def extractor_agent(state: ScrapeState, config: RunnableConfig) -> dict:
    """
    Fetch the current unit's raw payloads with the configured strategy.
    """
    context = get_context(config)
    unit = state.get("current_unit")
    if unit is None:
        return {"payloads": [], "errors": []}

    strategy = context.settings.extraction_strategy
    logger.info("[Extractor] %s: %s", strategy, unit.query)

    try:
        result = EXTRACTORS[strategy](unit, context)
    except ValidationError as e:
        # Upstream body did not fit the payload model
        result = _failed(f"Unexpected response shape: {e.error_count()} validation error(s)")

    if not result.success:
        error = f"Extraction failed for {unit.query!r}: {result.error}"
        logger.warning("[Extractor] %s", error)
        return {"payloads": [], "errors": [error]}

    return {"payloads": result.payloads, "errors": []}
