"""
API Fetcher Tool — one outbound call per request to the extraction providers.

Two providers are supported:
  1. JSearch (RapidAPI) — structured job search results
  2. Firecrawl — page scraping with schema extraction, markdown, or links

Every function returns a result dict and never raises:
    success (bool), data (dict), error (str), status_code (int)
"""

from typing import Optional
from urllib.parse import urlencode

import httpx


FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"
INDEED_SEARCH_URL = "https://www.indeed.com/jobs"

DEFAULT_HEADERS = {
    "User-Agent": "ld-jobs-scraper/1.0",
    "Accept": "application/json",
}

EXTRACT_SCHEMA = {
    "type": "object",
    "properties": {
        "jobs": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Job title"},
                    "company": {"type": "string", "description": "Company name"},
                    "location": {"type": "string", "description": "Job location"},
                    "apply_url": {"type": "string", "description": "Direct URL to the job posting"},
                    "salary": {"type": "string", "description": "Salary if listed"},
                    "description": {"type": "string", "description": "Job description snippet"},
                    "posted": {"type": "string", "description": "When the job was posted, e.g. '3 days ago'"},
                },
                "required": ["title", "company", "apply_url"],
            },
        }
    },
    "required": ["jobs"],
}

EXTRACT_PROMPT = """Extract all job listings from this Indeed search results page.
For each job, extract:
- title: The job title
- company: Company name
- location: Job location
- apply_url: THE DIRECT LINK TO THE JOB POSTING. Look for links containing 'viewjob?jk=' or 'rc/clk?jk=' with a job key. Do NOT return the search page URL.
- salary: Salary if shown
- description: Brief job description
- posted: How long ago the job was posted, exactly as shown

The apply_url MUST be the link to view that specific job, not the search results page."""


def _result(success: bool, data: Optional[dict] = None, error: str = "", status_code: int = 0) -> dict:
    return {
        "success": success,
        "data": data if data is not None else {},
        "error": error,
        "status_code": status_code,
    }


def _send(
    method: str,
    url: str,
    *,
    params: Optional[dict] = None,
    json_body: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: int = 60,
    client: Optional[httpx.Client] = None,
) -> dict:
    request_headers = {**DEFAULT_HEADERS, **(headers or {})}

    try:
        if client is not None:
            resp = client.request(method, url, params=params, json=json_body, headers=request_headers, timeout=timeout)
        else:
            with httpx.Client(timeout=timeout, follow_redirects=True) as own_client:
                resp = own_client.request(method, url, params=params, json=json_body, headers=request_headers)
    except httpx.TimeoutException:
        return _result(False, error=f"Timeout after {timeout}s for {url}")
    except httpx.HTTPError as e:
        return _result(False, error=f"HTTP error for {url}: {e}")

    if not resp.is_success:
        body = resp.text[:300] if resp.text else ""
        return _result(False, error=f"API returned HTTP {resp.status_code}: {body}".strip(), status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError:
        return _result(False, error=f"Invalid JSON from {url}", status_code=resp.status_code)

    if not isinstance(data, dict):
        data = {"data": data}
    return _result(True, data=data, status_code=resp.status_code)


def fetch_jobs_from_api(
    api_url: str,
    params: dict = None,
    headers: dict = None,
    timeout: int = 60,
    client: Optional[httpx.Client] = None,
) -> dict:
    """GET a JSON API endpoint."""
    return _send("GET", api_url, params=params, headers=headers, timeout=timeout, client=client)


def fetch_jobs_from_api_post(
    api_url: str,
    json_body: dict = None,
    headers: dict = None,
    timeout: int = 60,
    client: Optional[httpx.Client] = None,
) -> dict:
    """POST a JSON body to an API endpoint."""
    return _send("POST", api_url, json_body=json_body or {}, headers=headers, timeout=timeout, client=client)


def build_indeed_search_url(term: str, location: str) -> str:
    return f"{INDEED_SEARCH_URL}?{urlencode({'q': term or 'Learning and Development', 'l': location or 'Remote'})}"


def search_jsearch(
    query: str,
    api_key: str,
    *,
    host: str = "jsearch.p.rapidapi.com",
    page: int = 1,
    num_pages: int = 1,
    date_posted: str = "month",
    timeout: int = 60,
    client: Optional[httpx.Client] = None,
) -> dict:
    """
    Fetch ONE page of JSearch results for a free-text query like
    "Instructional Designer in Remote".

    On success, `data` is the full JSON response; postings are under "data".
    """
    params = {
        "query": query,
        "page": str(page),
        "num_pages": str(num_pages),
        "date_posted": date_posted,
    }
    headers = {
        "X-RapidAPI-Key": api_key,
        "X-RapidAPI-Host": host,
    }
    result = fetch_jobs_from_api(f"https://{host}/search", params=params, headers=headers, timeout=timeout, client=client)

    if result["success"] and str(result["data"].get("status", "OK")).upper() == "ERROR":
        message = result["data"].get("error", {})
        if isinstance(message, dict):
            message = message.get("message", "unknown error")
        return _result(False, data=result["data"], error=f"JSearch error: {message}", status_code=result["status_code"])
    return result


def firecrawl_scrape(
    url: str,
    api_key: str,
    formats: list[str],
    *,
    extract: Optional[dict] = None,
    only_main_content: bool = True,
    timeout: int = 60,
    client: Optional[httpx.Client] = None,
) -> dict:
    """
    Scrape one page through Firecrawl.

    On success, `data` is the scrape document (markdown, links, html,
    metadata, extract), unwrapped from Firecrawl's {"success", "data"} envelope.
    """
    body = {
        "url": url,
        "formats": formats,
        "onlyMainContent": only_main_content,
    }
    if extract:
        body["extract"] = extract

    headers = {"Authorization": f"Bearer {api_key}"}
    result = fetch_jobs_from_api_post(FIRECRAWL_SCRAPE_URL, json_body=body, headers=headers, timeout=timeout, client=client)
    if not result["success"]:
        return result

    envelope = result["data"]
    if envelope.get("success") is False:
        return _result(False, error=f"Firecrawl error: {envelope.get('error', 'unknown error')}", status_code=result["status_code"])

    document = envelope.get("data", envelope)
    if not isinstance(document, dict):
        document = {}
    return _result(True, data=document, status_code=result["status_code"])


def firecrawl_extract_jobs(url: str, api_key: str, **kwargs) -> dict:
    """Schema-driven job extraction of a search results page."""
    return firecrawl_scrape(
        url,
        api_key,
        ["extract"],
        extract={"schema": EXTRACT_SCHEMA, "prompt": EXTRACT_PROMPT},
        **kwargs,
    )
