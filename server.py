"""
HTTP surface for the scraper.

POST /scrape-jobs runs one batch and returns the counters plus the resume
cursor. GET /jobs lists what the job board shows. Every response carries
permissive CORS headers so the browser client can call it directly.
"""

import logging
from typing import Callable, Optional

from dateutil import parser as date_parser
from fastapi import FastAPI, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config.settings import ConfigurationError, settings as default_settings
from graph.context import ScrapeContext, build_context
from graph.workflow import run_batch
from models.search import ScrapeRequest
from tools.job_store import ALLOWED_SOURCES
from tools.recency import format_time_ago


logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _json(payload: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=CORS_HEADERS)


def _error(message: str, status_code: int) -> JSONResponse:
    return _json({"success": False, "error": message}, status_code=status_code)


def job_to_card(row: dict) -> dict:
    """Stored row → the camelCase shape the job board renders."""
    posted_at = row.get("posted_at")
    posted_text = ""
    if posted_at:
        try:
            posted_text = format_time_ago(date_parser.isoparse(str(posted_at)))
        except (ValueError, OverflowError):
            posted_text = ""

    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "company": row.get("company"),
        "location": row.get("location"),
        "locationType": row.get("location_type"),
        "employmentType": row.get("employment_type"),
        "salary": row.get("salary"),
        "description": row.get("description"),
        "applyUrl": row.get("apply_url"),
        "source": row.get("source"),
        "category": row.get("category"),
        "postedAt": posted_text,
    }


def create_app(context_factory: Optional[Callable[[], ScrapeContext]] = None) -> FastAPI:
    """
    Build the application.

    Args:
        context_factory: Returns the ScrapeContext for one request. Defaults to
            validating the process settings and opening the configured store.
    """
    if context_factory is None:
        def context_factory() -> ScrapeContext:
            return build_context(default_settings)

    app = FastAPI(title="L&D Job Scraper")

    @app.options("/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post("/scrape-jobs")
    async def scrape_jobs(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        try:
            scrape_request = ScrapeRequest.model_validate(body)
        except ValidationError as e:
            return _error(f"Invalid request: {e.errors()[0].get('msg', 'bad input')}", 400)

        try:
            context = context_factory()
            response = await run_in_threadpool(run_batch, scrape_request, context)
        except ConfigurationError as e:
            logger.error("[Server] Configuration error: %s", e)
            return _error(str(e), 500)
        except Exception as e:
            logger.exception("[Server] Scrape failed")
            return _error(str(e) or e.__class__.__name__, 500)

        return _json(response.to_payload())

    @app.get("/jobs")
    async def list_jobs(limit: int = Query(default=100, ge=1, le=500)) -> JSONResponse:
        try:
            context = context_factory()
            rows = await run_in_threadpool(context.store.recent_jobs, ALLOWED_SOURCES, limit)
        except ConfigurationError as e:
            return _error(str(e), 500)
        except Exception as e:
            logger.exception("[Server] Listing jobs failed")
            return _error(str(e) or e.__class__.__name__, 500)

        return _json({"success": True, "jobs": [job_to_card(row) for row in rows]})

    return app


app = create_app()
