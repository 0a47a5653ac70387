"""
Job Parser — turns raw extractor payloads into canonical job records.

One strategy per payload kind, all behind `parse_payload(payload)`:
  - job_search       structured JSearch results
  - json_extraction  Firecrawl schema extraction of a search page
  - markdown         a search page (many listings) or a single posting page
  - link_list        posting links harvested from a search page

Every strategy is best-effort: missing fields degrade to defaults and a
listing without a title or an identity key is dropped, never raised.
Provider page-title formats live in PAGE_TITLE_SPLITTERS so a format
change touches one function.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin, urlsplit

from pydantic import ValidationError

from models.job import DEFAULT_CATEGORY, DEFAULT_COMPANY, CanonicalJobRecord
from models.payloads import JobLink, JobSearchResults, JsonExtraction, LinkList, MarkdownExtraction
from tools.fields import (
    clean_company,
    clean_title,
    collapse_whitespace,
    employment_type_for,
    format_location,
    format_salary,
    location_type_for,
    truncate_description,
)
from tools.identity import INDEED_BASE_URL, canonical_url, derive_external_id, normalize_apply_url
from tools.recency import estimate_posted_at, parse_posted_date
from tools.text_extractor import extract_page_title, extract_text


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseOptions:
    """Per-unit context for parsing."""

    search_location: Optional[str] = None
    description_max_length: int = 500
    category: str = DEFAULT_CATEGORY


# ── Provider URL shapes ──────────────────────────────────────────

PROVIDERS = {
    "indeed": {
        "host": "indeed.",
        "source": "Indeed",
        "posting": (r"/viewjob", r"/rc/clk", r"/pagead/clk", r"[?&]jk=[a-f0-9]{16}"),
        "listing": (r"^/jobs(?:/|$)", r"^/q-", r"^/cmp/", r"^/career", r"^/salaries", r"^/companies"),
    },
    "linkedin": {
        "host": "linkedin.com",
        "source": "LinkedIn",
        "posting": (r"/jobs/view/",),
        "listing": (r"/jobs/search", r"/jobs/collections"),
    },
    "glassdoor": {
        "host": "glassdoor.",
        "source": "Glassdoor",
        "posting": (r"/job-listing/", r"[?&]jl(?:id)?=\d+"),
        "listing": (r"SRCH_", r"/Job/jobs\.htm"),
    },
    "ziprecruiter": {
        "host": "ziprecruiter.com",
        "source": "ZipRecruiter",
        "posting": (r"/c/[^/]+/Job/", r"/jobs/[^/]+/[^/]+-[0-9a-f]{8}"),
        "listing": (r"/candidate/search", r"/Jobs/[^/]+$"),
    },
}


def provider_for_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    host = urlsplit(url).netloc.lower()
    for name, rules in PROVIDERS.items():
        if rules["host"] in host:
            return name
    return None


def source_for_url(url: Optional[str], default: Optional[str] = None) -> Optional[str]:
    provider = provider_for_url(url)
    return PROVIDERS[provider]["source"] if provider else default


def is_posting_url(url: Optional[str], provider: Optional[str] = None) -> bool:
    """True for an individual posting URL, False for search/listing pages and unknown hosts."""
    if not url or not url.startswith(("http://", "https://")):
        return False
    provider = provider or provider_for_url(url)
    rules = PROVIDERS.get(provider)
    if rules is None:
        return False

    parts = urlsplit(url)
    path_and_query = f"{parts.path}?{parts.query}" if parts.query else parts.path

    if any(re.search(pattern, parts.path, re.IGNORECASE) for pattern in rules["listing"]):
        return False
    return any(re.search(pattern, path_and_query, re.IGNORECASE) for pattern in rules["posting"])


def select_posting_links(
    links: list[JobLink],
    base_url: str = INDEED_BASE_URL,
    limit: Optional[int] = None,
) -> list[JobLink]:
    """Keep posting links only, absolute and unique by canonical URL, in page order."""
    selected = []
    seen = set()

    for link in links:
        url = urljoin(base_url, (link.url or "").strip())
        if not is_posting_url(url):
            continue
        key = canonical_url(url)
        if key in seen:
            continue
        seen.add(key)
        selected.append(JobLink(url=url, text=link.text))
        if limit is not None and len(selected) >= limit:
            break

    return selected


# ── Text patterns ────────────────────────────────────────────────

AMOUNT = r"\$\s?\d[\d,]*(?:\.\d+)?\s*[kK]?"
UNIT = r"(?:an?|per|/)\s*(?:hour|hr|year|yr|month|week|day)"
DASH = r"(?:-|–|—|to)"

# Ordered by preference: explicit ranges with units, single figures with units, bare amounts
SALARY_PATTERNS = (
    re.compile(rf"{AMOUNT}\s*{DASH}\s*{AMOUNT}\s*{UNIT}", re.IGNORECASE),
    re.compile(rf"(?:(?:from|up to|starting at)\s+)?{AMOUNT}\s*{UNIT}", re.IGNORECASE),
    re.compile(rf"{AMOUNT}(?:\s*{DASH}\s*{AMOUNT})?", re.IGNORECASE),
)

POSTED_RE = re.compile(
    r"(just posted|just now|today|\d+\+?\s*(?:minute|hour|day|week|month)s?\s+ago)",
    re.IGNORECASE,
)
EMPLOYMENT_RE = re.compile(r"\b(full[- ]time|part[- ]time|contract(?:or)?|temporary|freelance)\b", re.IGNORECASE)

MARKDOWN_LINK_RE = re.compile(r"(?<!!)\[([^\]\n]{1,300})\]\(\s*(<[^>]+>|[^)\s]+)(?:\s+\"[^\"]*\")?\s*\)")
MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)

COMPANY_LABEL_RE = re.compile(
    r"^\s*[*_]*(?:company(?:\s+name)?|employer|hiring company)[*_]*\s*[:\-]\s*[*_]*\s*(.+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)
RATING_COMPANY_RE = re.compile(
    r"^\s*([^\n]{2,80}?)\s*\n?\s*\d\.\d\s*(?:out of 5 stars|★)",
    re.IGNORECASE | re.MULTILINE,
)
LOCATION_LABEL_RE = re.compile(
    r"^\s*[*_]*(?:job\s+)?location[*_]*\s*[:\-]\s*[*_]*\s*(.+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)
CITY_STATE_RE = re.compile(r"\b([A-Z][a-zA-Z.'-]+(?:\s[A-Z][a-zA-Z.'-]+)*,\s*[A-Z]{2})\b(?:\s+\d{5})?")
RATING_ONLY_RE = re.compile(r"^\d(?:\.\d)?\s*(?:out of 5 stars|★)?$", re.IGNORECASE)


def find_salary(text: str) -> Optional[str]:
    for pattern in SALARY_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return collapse_whitespace(match.group(0))
    return None


def find_posted_text(text: str) -> Optional[str]:
    match = POSTED_RE.search(text or "")
    return match.group(1) if match else None


def find_employment_text(text: str) -> Optional[str]:
    match = EMPLOYMENT_RE.search(text or "")
    return match.group(1) if match else None


def _looks_like_location(line: str) -> bool:
    lowered = line.lower()
    return bool(
        CITY_STATE_RE.search(line)
        or lowered.startswith(("remote", "hybrid"))
        or lowered in ("united states", "us", "usa")
    )


def find_location(text: str) -> Optional[str]:
    """Labeled location first, then a City, ST pair, then a bare remote marker."""
    match = LOCATION_LABEL_RE.search(text or "")
    if match:
        return collapse_whitespace(match.group(1))

    for line in (text or "").splitlines():
        line = collapse_whitespace(line)
        if line and len(line) <= 80 and _looks_like_location(line):
            return line

    match = CITY_STATE_RE.search(text or "")
    if match:
        return match.group(1)
    if re.search(r"\bremote\b", text or "", re.IGNORECASE):
        return "Remote"
    return None


def markdown_to_text(markdown: str) -> str:
    """Drop images, unwrap links and strip heading/emphasis markers."""
    text = MARKDOWN_IMAGE_RE.sub(" ", markdown or "")
    text = MARKDOWN_LINK_RE.sub(lambda m: m.group(1), text)
    text = re.sub(r"^\s{0,3}#{1,6}\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"[*_`]{1,3}", "", text)
    return text


def _lines(text: str) -> list[str]:
    return [line for line in (collapse_whitespace(raw) for raw in text.splitlines()) if line]


# ── Page titles (per provider) ───────────────────────────────────

def _split_generic_title(page_title: str) -> tuple[str, Optional[str], Optional[str]]:
    head = re.split(r"\s+\|\s+", page_title)[0]
    parts = [part.strip() for part in re.split(r"\s+[-–—]\s+", head) if part.strip()]
    if not parts:
        return "", None, None
    title = parts[0]
    company = parts[1] if len(parts) > 1 else None
    location = parts[2] if len(parts) > 2 else None
    return title, company, location


def _split_linkedin_title(page_title: str) -> tuple[str, Optional[str], Optional[str]]:
    head = re.split(r"\s+\|\s+", page_title)[0]
    match = re.match(r"^(.+?)\s+hiring\s+(.+?)(?:\s+in\s+(.+))?$", head, re.IGNORECASE)
    if match:
        return match.group(2), match.group(1), match.group(3)
    return _split_generic_title(page_title)


PAGE_TITLE_SPLITTERS = {
    "indeed": _split_generic_title,
    "linkedin": _split_linkedin_title,
}


def split_page_title(page_title: str, provider: Optional[str] = None) -> tuple[str, Optional[str], Optional[str]]:
    """(title, company, location) from a provider page title like "Designer - Acme - Remote | Indeed.com"."""
    splitter = PAGE_TITLE_SPLITTERS.get(provider, _split_generic_title)
    return splitter(collapse_whitespace(page_title))


def _metadata_value(metadata: dict, *keys: str) -> str:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, IndexError, OverflowError)


def _parse_each(parse_item, items, *args) -> list[CanonicalJobRecord]:
    """Apply parse_item to every item; a malformed item is dropped on its own."""
    records = []
    for item in items:
        try:
            record = parse_item(item, *args)
        except PARSE_ERRORS as e:
            logger.warning("[Parser] Dropping listing that could not be parsed: %s", e)
            continue
        if record is not None:
            records.append(record)
    return records


def _build_record(**fields) -> Optional[CanonicalJobRecord]:
    try:
        return CanonicalJobRecord(**fields)
    except ValidationError as e:
        logger.debug("[Parser] Dropping record that failed validation: %s", e)
        return None


# ── Strategy: JSearch results ───────────────────────────────────

def _parse_utc(value) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        return parse_posted_date(value)
    return None


def parse_job_search_item(item: dict, options: Optional[ParseOptions] = None) -> Optional[CanonicalJobRecord]:
    options = options or ParseOptions()
    if not isinstance(item, dict):
        return None

    title = clean_title(item.get("job_title"))
    if not title:
        return None

    apply_url = normalize_apply_url(item.get("job_apply_link") or item.get("job_google_link"))
    external_id = derive_external_id(apply_url, provider_id=item.get("job_id"))
    if not external_id:
        return None

    is_remote = bool(item.get("job_is_remote"))
    location = format_location(
        city=item.get("job_city"),
        state=item.get("job_state"),
        country=item.get("job_country"),
        is_remote=is_remote,
        fallback=item.get("job_location"),
    )

    posted_text = item.get("job_posted_at") or item.get("job_posted_at_datetime_utc")
    posted_at = (
        _parse_utc(item.get("job_posted_at_datetime_utc"))
        or _parse_utc(item.get("job_posted_at_timestamp"))
        or estimate_posted_at(posted_text)
    )

    return _build_record(
        title=title,
        company=clean_company(item.get("employer_name")),
        location=location,
        location_type=location_type_for(location, is_remote),
        employment_type=employment_type_for(item.get("job_employment_type") or item.get("job_employment_types")),
        salary=format_salary(
            item.get("job_salary"),
            item.get("job_min_salary"),
            item.get("job_max_salary"),
            item.get("job_salary_period"),
        ),
        description=truncate_description(item.get("job_description"), options.description_max_length),
        apply_url=apply_url,
        source=collapse_whitespace(item.get("job_publisher")) or "JSearch",
        external_id=external_id,
        category=options.category,
        posted_at=posted_at,
        posted_text=posted_text if isinstance(posted_text, str) else None,
    )


def parse_job_search_results(payload: JobSearchResults, options: ParseOptions) -> list[CanonicalJobRecord]:
    return _parse_each(parse_job_search_item, payload.jobs, options)


# ── Strategy: schema extraction ─────────────────────────────────

def parse_extracted_job(
    item: dict,
    options: Optional[ParseOptions] = None,
    page_url: str = "",
) -> Optional[CanonicalJobRecord]:
    options = options or ParseOptions()
    if not isinstance(item, dict):
        return None

    title = clean_title(item.get("title"))
    if not title:
        return None

    base_url = page_url or INDEED_BASE_URL
    apply_url = normalize_apply_url(item.get("apply_url") or item.get("url"), base_url=base_url)
    if not apply_url:
        logger.info("[Parser] Skipping job without a usable URL: %s", title)
        return None
    # The extractor sometimes answers with the search page itself
    if page_url and canonical_url(apply_url) == canonical_url(page_url):
        logger.info("[Parser] Skipping job pointing at the search page: %s", title)
        return None

    external_id = derive_external_id(apply_url)
    location = collapse_whitespace(item.get("location")) or options.search_location or "Remote"
    posted_text = item.get("posted") if isinstance(item.get("posted"), str) else None

    return _build_record(
        title=title,
        company=clean_company(item.get("company")),
        location=location,
        location_type=location_type_for(location),
        employment_type=employment_type_for(item.get("employment_type") or find_employment_text(item.get("description") or "")),
        salary=format_salary(item.get("salary")),
        description=truncate_description(item.get("description"), options.description_max_length),
        apply_url=apply_url,
        source=source_for_url(page_url) or source_for_url(apply_url) or "Indeed",
        external_id=external_id,
        category=options.category,
        posted_at=estimate_posted_at(posted_text),
        posted_text=posted_text,
    )


def parse_json_extraction(payload: JsonExtraction, options: ParseOptions) -> list[CanonicalJobRecord]:
    return _parse_each(parse_extracted_job, payload.jobs, options, payload.source_url)


# ── Strategy: markdown ──────────────────────────────────────────

def _fallback_title(body: str) -> str:
    for match in HEADING_RE.finditer(body):
        title = clean_title(markdown_to_text(match.group(1)))
        if title:
            return title
    for line in _lines(markdown_to_text(body))[:5]:
        if len(line) <= 120:
            title = clean_title(line)
            if title:
                return title
    return ""


def _company_from_body(text: str) -> Optional[str]:
    match = COMPANY_LABEL_RE.search(text)
    if match:
        return match.group(1)
    match = RATING_COMPANY_RE.search(text)
    if match:
        return match.group(1)
    return None


def parse_job_page(
    markdown: str,
    metadata: Optional[dict] = None,
    url: str = "",
    options: Optional[ParseOptions] = None,
    html: str = "",
) -> Optional[CanonicalJobRecord]:
    """
    Parse one posting page. Returns None when no title or no identity key
    can be recovered.
    """
    options = options or ParseOptions()
    metadata = metadata if isinstance(metadata, dict) else {}
    body = markdown if isinstance(markdown, str) and markdown.strip() else extract_text(html or "")

    page_url = url or _metadata_value(metadata, "sourceURL", "url", "ogUrl", "og:url")
    apply_url = normalize_apply_url(page_url) if page_url else None
    provider = provider_for_url(apply_url)

    page_title = _metadata_value(metadata, "title", "ogTitle", "og:title") or extract_page_title(html or "")
    title, company, location = split_page_title(page_title, provider) if page_title else ("", None, None)
    title = clean_title(title) or _fallback_title(body)
    if not title:
        return None

    external_id = derive_external_id(apply_url or page_url or None)
    if not external_id:
        return None

    text = markdown_to_text(body)
    if not company:
        company = _company_from_body(text)

    location = collapse_whitespace(location) or find_location(text) or options.search_location or "Unknown"
    posted_text = find_posted_text(text)

    return _build_record(
        title=title,
        company=clean_company(company),
        location=location,
        location_type=location_type_for(location),
        employment_type=employment_type_for(find_employment_text(text)),
        salary=find_salary(text),
        description=truncate_description(
            _metadata_value(metadata, "description", "ogDescription", "og:description") or text,
            options.description_max_length,
        ),
        apply_url=apply_url,
        source=source_for_url(apply_url) or "Indeed",
        external_id=external_id,
        category=options.category,
        posted_at=estimate_posted_at(posted_text),
        posted_text=posted_text,
    )


def _parse_listing_segment(
    link_text: str,
    link_url: str,
    segment: str,
    options: ParseOptions,
) -> Optional[CanonicalJobRecord]:
    title = clean_title(markdown_to_text(link_text))
    if not title:
        return None
    external_id = derive_external_id(link_url)
    if not external_id:
        return None

    text = markdown_to_text(segment)
    lines = _lines(text)
    salary = find_salary(text)
    posted_text = find_posted_text(text)
    employment_text = find_employment_text(text)

    location = None
    match = LOCATION_LABEL_RE.search(text)
    if match:
        location = collapse_whitespace(match.group(1))
    else:
        location = next((line for line in lines if len(line) <= 80 and _looks_like_location(line)), None)

    company = _company_from_body(text)
    if not company:
        for line in lines:
            if line == location or len(line) > 80 or RATING_ONLY_RE.match(line):
                continue
            if (salary and salary in line) or (posted_text and posted_text in line):
                continue
            if employment_text and line.lower() == employment_text.lower():
                continue
            company = line
            break

    described = [line for line in lines if line not in (company, location)]
    location = location or options.search_location or "Unknown"

    return _build_record(
        title=title,
        company=clean_company(company),
        location=location,
        location_type=location_type_for(location),
        employment_type=employment_type_for(employment_text),
        salary=salary,
        description=truncate_description(" ".join(described), options.description_max_length),
        apply_url=link_url,
        source=source_for_url(link_url) or "Indeed",
        external_id=external_id,
        category=options.category,
        posted_at=estimate_posted_at(posted_text),
        posted_text=posted_text,
    )


def parse_listing_markdown(markdown: str, page_url: str, options: Optional[ParseOptions] = None) -> list[CanonicalJobRecord]:
    """Split a search results page into one record per posting link."""
    options = options or ParseOptions()
    base_url = page_url or INDEED_BASE_URL

    anchors = []
    seen = set()
    for match in MARKDOWN_LINK_RE.finditer(markdown or ""):
        url = urljoin(base_url, match.group(2).strip("<>"))
        if not is_posting_url(url):
            continue
        key = canonical_url(url)
        if key in seen:
            continue
        seen.add(key)
        anchors.append((match, url))

    segments = []
    for position, (match, url) in enumerate(anchors):
        end = anchors[position + 1][0].start() if position + 1 < len(anchors) else len(markdown)
        segments.append((match.group(1), url, markdown[match.end():end]))

    return _parse_each(lambda segment: _parse_listing_segment(*segment, options), segments)


def parse_markdown(payload: MarkdownExtraction, options: ParseOptions) -> list[CanonicalJobRecord]:
    page_url = payload.source_url or _metadata_value(payload.metadata, "sourceURL", "url")

    if not is_posting_url(page_url):
        listings = parse_listing_markdown(payload.markdown, page_url, options)
        if listings:
            return listings

    record = parse_job_page(payload.markdown, payload.metadata, page_url, options, html=payload.html)
    return [record] if record is not None else []


# ── Strategy: link list ─────────────────────────────────────────

def parse_link_list(payload: LinkList, options: ParseOptions) -> list[CanonicalJobRecord]:
    """Title-only records from posting anchors; links without usable text are dropped."""
    records = []
    for link in select_posting_links(payload.links, payload.source_url or INDEED_BASE_URL):
        title = clean_title(link.text)
        external_id = derive_external_id(link.url)
        if not title or not external_id:
            continue
        location = options.search_location or "Unknown"
        record = _build_record(
            title=title,
            company=DEFAULT_COMPANY,
            location=location,
            location_type=location_type_for(location),
            apply_url=link.url,
            source=source_for_url(link.url) or "Indeed",
            external_id=external_id,
            category=options.category,
        )
        if record is not None:
            records.append(record)
    return records


PARSERS = {
    "job_search": parse_job_search_results,
    "json_extraction": parse_json_extraction,
    "markdown": parse_markdown,
    "link_list": parse_link_list,
}


def parse_payload(payload, options: Optional[ParseOptions] = None) -> list[CanonicalJobRecord]:
    """Dispatch a raw payload to its strategy. Parse failures yield no records."""
    parser = PARSERS[payload.kind]
    try:
        return parser(payload, options or ParseOptions())
    except PARSE_ERRORS as e:
        logger.warning("[Parser] %s payload could not be parsed: %s", payload.kind, e)
        return []
