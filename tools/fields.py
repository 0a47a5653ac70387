"""
Field Normalizer — pure functions mapping provider-specific raw fields onto
canonical job record fields.

Nothing here raises: missing or malformed input degrades to a default.
"""

import math
import re
from typing import Optional

from models.job import DEFAULT_COMPANY, EmploymentType, LocationType


MIN_TITLE_LENGTH = 4

# Tokens that providers append to page titles and company blocks
PROVIDER_BOILERPLATE = (
    "indeed.com",
    "indeed",
    "linkedin",
    "glassdoor",
    "ziprecruiter",
    "simplyhired",
    "job details",
    "job posting",
)

EMPLOYMENT_TYPE_MAP = {
    "fulltime": EmploymentType.FULL_TIME,
    "full_time": EmploymentType.FULL_TIME,
    "full-time": EmploymentType.FULL_TIME,
    "full time": EmploymentType.FULL_TIME,
    "permanent": EmploymentType.FULL_TIME,
    "parttime": EmploymentType.PART_TIME,
    "part_time": EmploymentType.PART_TIME,
    "part-time": EmploymentType.PART_TIME,
    "part time": EmploymentType.PART_TIME,
    "contractor": EmploymentType.CONTRACT,
    "contract": EmploymentType.CONTRACT,
    "temporary": EmploymentType.CONTRACT,
    "freelance": EmploymentType.FREELANCE,
    "freelancer": EmploymentType.FREELANCE,
}

PERIOD_MAP = {
    "year": "year",
    "yearly": "year",
    "annual": "year",
    "annually": "year",
    "month": "month",
    "monthly": "month",
    "week": "week",
    "weekly": "week",
    "day": "day",
    "daily": "day",
    "hour": "hour",
    "hourly": "hour",
}


def _to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).replace(",", "").replace("$", "").strip())
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) and number > 0 else None


def _money(amount: float) -> str:
    if amount == int(amount):
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def format_salary(
    salary: Optional[str] = None,
    min_amount=None,
    max_amount=None,
    period: Optional[str] = None,
) -> Optional[str]:
    """
    Render a salary string.

    Numeric input wins: "$<min> - $<max>" for a range, "$<amount> per <period>"
    for a single figure. Otherwise free text passes through unchanged.
    """
    low = _to_number(min_amount)
    high = _to_number(max_amount)

    if low and high:
        if low == high:
            high = None
        else:
            low, high = min(low, high), max(low, high)
            return f"{_money(low)} - {_money(high)}"

    amount = low or high
    if amount:
        unit = PERIOD_MAP.get(collapse_whitespace(period).lower())
        return f"{_money(amount)} per {unit}" if unit else _money(amount)

    if isinstance(salary, str) and salary.strip():
        return salary.strip()
    return None


def format_location(
    city: Optional[str] = None,
    state: Optional[str] = None,
    country: Optional[str] = None,
    is_remote: Optional[bool] = None,
    fallback: Optional[str] = None,
) -> str:
    """Compose "city, state" (or "city, country"), prefixed with "Remote in " for remote roles."""
    city = collapse_whitespace(city)
    region = collapse_whitespace(state) or collapse_whitespace(country)

    if city and region:
        concrete = f"{city}, {region}"
    else:
        concrete = city or region

    if concrete and is_remote:
        return f"Remote in {concrete}"
    if concrete:
        return concrete
    if is_remote:
        return "Remote"

    return collapse_whitespace(fallback) or "Unknown"


def location_type_for(location: Optional[str], is_remote: Optional[bool] = None) -> LocationType:
    """Remote whenever the flag is set or "remote" appears in the text; hybrid and on-site otherwise."""
    text = (location or "").lower()
    if is_remote or "remote" in text:
        return LocationType.REMOTE
    if "hybrid" in text:
        return LocationType.HYBRID
    return LocationType.ON_SITE


def employment_type_for(value) -> EmploymentType:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str):
        return EmploymentType.FULL_TIME

    key = value.strip().lower()
    if key in EMPLOYMENT_TYPE_MAP:
        return EMPLOYMENT_TYPE_MAP[key]
    for token, employment_type in EMPLOYMENT_TYPE_MAP.items():
        if token in key:
            return employment_type
    return EmploymentType.FULL_TIME


def collapse_whitespace(text: Optional[str]) -> str:
    if not isinstance(text, str):
        return ""
    return re.sub(r"\s+", " ", text).strip()


def truncate_description(text: Optional[str], max_length: int = 500) -> Optional[str]:
    text = collapse_whitespace(text)
    if not text:
        return None
    if len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def clean_title(text: Optional[str]) -> str:
    """Strip markdown decoration and whitespace; "" when too short to be a title."""
    text = re.sub(r"[#*_`>\[\]]+", " ", text if isinstance(text, str) else "")
    text = collapse_whitespace(text).strip(" -|:")
    if len(text) < MIN_TITLE_LENGTH:
        return ""
    return text


def strip_boilerplate(text: Optional[str]) -> str:
    """Remove provider names, ratings and review counts from a company string."""
    text = collapse_whitespace(text)
    text = re.sub(r"\d(?:\.\d)?\s*(?:out of 5 stars|stars?|★)", " ", text, flags=re.IGNORECASE)
    text = re.sub(r"\(?\d[\d,]*\s+reviews?\)?", " ", text, flags=re.IGNORECASE)
    text = text.replace("★", " ")
    for token in PROVIDER_BOILERPLATE:
        text = re.sub(rf"(?i)(?:^|\s|[-|])\s*{re.escape(token)}\s*$", " ", text)
    text = re.sub(r"\s\d(?:\.\d)?$", " ", text)
    return collapse_whitespace(text).strip(" -|,")


def clean_company(text: Optional[str]) -> str:
    company = strip_boilerplate(text)
    if company.lower() in PROVIDER_BOILERPLATE:
        company = ""
    return company or DEFAULT_COMPANY
