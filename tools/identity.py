"""
Identity keys — derive the per-source dedup key for a posting.

Preference order: provider-native job key embedded in the URL, then the
canonical absolute URL, then a bounded hash of the URL.
"""

import base64
import hashlib
import re
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


INDEED_BASE_URL = "https://www.indeed.com"
MAX_EXTERNAL_ID_LENGTH = 255
HASH_ID_LENGTH = 32

# Indeed job keys are 16 hex characters in a jk/vjk query parameter
INDEED_JOB_KEY_RE = re.compile(r"[?&#](?:jk|vjk)=([a-f0-9]{16})(?![a-f0-9])", re.IGNORECASE)
BARE_JOB_KEY_RE = re.compile(r"^[a-f0-9]{16}$", re.IGNORECASE)
LINKEDIN_JOB_ID_RE = re.compile(r"linkedin\.com/jobs/view/(?:[^/?#]*-)?(\d{6,})", re.IGNORECASE)
LINKEDIN_CURRENT_JOB_RE = re.compile(r"linkedin\.com/.*[?&]currentJobId=(\d{6,})", re.IGNORECASE)

TRACKING_PARAMS = ("utm_", "from", "tk", "refid", "trackingid", "advn", "adid", "sjdu", "xkcb", "xpse")


def extract_job_key(url: Optional[str]) -> Optional[str]:
    """Return the provider-native job key embedded in a URL, if any."""
    if not url:
        return None
    for pattern in (INDEED_JOB_KEY_RE, LINKEDIN_JOB_ID_RE, LINKEDIN_CURRENT_JOB_RE):
        match = pattern.search(url)
        if match:
            return match.group(1).lower()
    return None


def normalize_apply_url(url: Optional[str], base_url: str = INDEED_BASE_URL) -> Optional[str]:
    """
    Turn whatever the extractor returned into an absolute posting URL.

    Relative paths are joined onto the provider base and a bare 16-hex job
    key becomes an Indeed viewjob link. Anything else is not usable.
    """
    if not url or not isinstance(url, str):
        return None
    url = url.strip()

    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return urljoin(base_url, url)
    if BARE_JOB_KEY_RE.match(url):
        return f"{INDEED_BASE_URL}/viewjob?jk={url.lower()}"
    return None


def canonical_url(url: str) -> str:
    """
    Stable form of a posting URL: lower-cased host, no fragment, no tracking
    parameters, sorted query. Indeed links collapse onto their viewjob form.
    """
    job_key = extract_job_key(url)
    parts = urlsplit(url)
    host = parts.netloc.lower()

    if job_key and "indeed." in host:
        return f"{INDEED_BASE_URL}/viewjob?jk={job_key}"
    if job_key and "linkedin." in host:
        return f"https://www.linkedin.com/jobs/view/{job_key}"

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not key.lower().startswith(TRACKING_PARAMS)
    ]
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower() or "https", host, path, urlencode(sorted(query)), ""))


def hash_url(url: str, length: int = HASH_ID_LENGTH) -> str:
    digest = hashlib.sha256(url.encode("utf-8")).digest()
    encoded = base64.b64encode(digest).decode("ascii")
    return re.sub(r"[^a-zA-Z0-9]", "", encoded)[:length]


def derive_external_id(url: Optional[str], provider_id: Optional[str] = None) -> Optional[str]:
    """Dedup key for a posting, or None when nothing identifies it."""
    if provider_id is not None and str(provider_id).strip():
        provider_id = str(provider_id).strip()
        if len(provider_id) <= MAX_EXTERNAL_ID_LENGTH:
            return provider_id
        return hash_url(provider_id)

    if not url:
        return None

    job_key = extract_job_key(url)
    if job_key:
        return job_key

    if url.startswith(("http://", "https://")):
        normalized = canonical_url(url)
        if len(normalized) <= MAX_EXTERNAL_ID_LENGTH:
            return normalized

    return hash_url(url)
