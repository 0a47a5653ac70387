"""
Recency Filter — decides whether a free-text posting age is inside the
rolling eligibility window.

`is_eligible` is total: any input yields a bool, unparseable text is
treated as eligible so extraction noise never discards a valid job.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser


WINDOW_DAYS = 30
MAX_DAYS_AGO = 30
MAX_WEEKS_AGO = 4
# "N months ago" is eligible only when N < 1, which rejects every real
# "months ago" string. Kept as observed upstream pending product clarification.
MAX_MONTHS_AGO_EXCLUSIVE = 1

FRESH_MARKERS = ("just posted", "today", "just now")

DAYS_AGO_RE = re.compile(r"(\d+)\+?\s*days?\s+ago", re.IGNORECASE)
WEEKS_AGO_RE = re.compile(r"(\d+)\+?\s*weeks?\s+ago", re.IGNORECASE)
MONTHS_AGO_RE = re.compile(r"(\d+)\+?\s*months?\s+ago", re.IGNORECASE)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_posted_date(text: str) -> Optional[datetime]:
    """Parse an absolute calendar date/timestamp; None when the text is not one."""
    if not re.search(r"\d", text):
        return None
    try:
        return _as_utc(date_parser.parse(text))
    except (ValueError, OverflowError):
        return None


def is_eligible(
    text: Optional[str],
    now: Optional[datetime] = None,
    window_days: int = WINDOW_DAYS,
) -> bool:
    """Return True if a "posted X ago" string (or absolute date) is recent enough to keep."""
    if not isinstance(text, str) or not text.strip():
        return True

    lowered = text.strip().lower()

    if any(marker in lowered for marker in FRESH_MARKERS):
        return True

    match = DAYS_AGO_RE.search(lowered)
    if match:
        return int(match.group(1)) <= MAX_DAYS_AGO

    match = WEEKS_AGO_RE.search(lowered)
    if match:
        return int(match.group(1)) <= MAX_WEEKS_AGO

    match = MONTHS_AGO_RE.search(lowered)
    if match:
        return int(match.group(1)) < MAX_MONTHS_AGO_EXCLUSIVE

    posted = parse_posted_date(text)
    if posted is not None:
        now = _as_utc(now or datetime.now(timezone.utc))
        return posted >= now - timedelta(days=window_days)

    return True


AGE_UNIT_RE = re.compile(r"(\d+)\+?\s*(minute|hour|day|week|month)s?\s+ago", re.IGNORECASE)
AGE_UNITS = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
}


def estimate_posted_at(text: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Best-effort posting timestamp from an age string; falls back to now."""
    now = _as_utc(now or datetime.now(timezone.utc))
    if not isinstance(text, str) or not text.strip():
        return now

    match = AGE_UNIT_RE.search(text)
    if match:
        try:
            return now - int(match.group(1)) * AGE_UNITS[match.group(2).lower()]
        except OverflowError:
            return now

    posted = parse_posted_date(text)
    if posted is not None and posted <= now:
        return posted
    return now


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """Human-facing age of a stored job, as shown on the job board."""
    now = _as_utc(now or datetime.now(timezone.utc))
    days = max((now - _as_utc(moment)).days, 0)

    if days == 0:
        return "Today"
    if days == 1:
        return "1 day ago"
    if days < 7:
        return f"{days} days ago"
    if days < 14:
        return "1 week ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"
