"""
Text Extractor Tool — extracts clean text and hyperlinks from HTML.
Uses BeautifulSoup to strip irrelevant elements.
"""

import re
from urllib.parse import urljoin
from bs4 import BeautifulSoup

from models.payloads import JobLink


def extract_text(html: str, max_length: int = 8000) -> str:
    """
    Extract meaningful text from raw HTML.
    Removes scripts, styles, nav, footer, and other non-content elements.

    Args:
        html: Raw HTML string.
        max_length: Maximum character length of extracted text.

    Returns:
        Cleaned text content, one block per line.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    # Remove elements that don't contain useful content
    for element in soup.find_all(
        ["script", "style", "nav", "footer", "header", "noscript", "svg", "iframe"]
    ):
        element.decompose()

    # Try to find the main content area first
    main_content = (
        soup.find("main")
        or soup.find("div", {"role": "main"})
        or soup.find("div", {"id": re.compile(r"(jobDescription|viewJob|content|main)", re.I)})
        or soup.body
        or soup
    )

    # Get text and normalize whitespace
    text = main_content.get_text(separator="\n", strip=True)

    # Collapse multiple blank lines into single ones
    text = re.sub(r"\n{3,}", "\n\n", text)

    # Collapse multiple spaces
    text = re.sub(r" {2,}", " ", text)

    # Truncate to keep payloads bounded
    return text[:max_length]


def extract_page_title(html: str) -> str:
    """The document <title>, or "" when there is none."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def extract_links(html: str, base_url: str) -> list[JobLink]:
    """
    Harvest every http(s) anchor on a page, resolved against base_url.

    Args:
        html: Raw HTML string.
        base_url: Base URL for resolving relative links.

    Returns:
        JobLinks in document order, each URL once.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")

    links = []
    seen_urls = set()

    for anchor in soup.find_all("a", href=True):
        # Resolve relative URLs
        full_url = urljoin(base_url, anchor["href"])

        # Skip if already seen, or if it's a non-HTTP link
        if full_url in seen_urls or not full_url.startswith("http"):
            continue

        seen_urls.add(full_url)
        links.append(JobLink(url=full_url, text=anchor.get_text(" ", strip=True)[:200]))  # Truncate long link text

    return links
