"""
Raw extractor payloads, one tagged variant per extraction strategy.

The parser dispatches on `kind`, so every payload the extractor produces
has exactly one parser strategy.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field


class JobSearchResults(BaseModel):
    """Structured result list from a job-search API (JSearch)."""

    kind: Literal["job_search"] = "job_search"
    jobs: list[dict] = Field(default_factory=list)
    query: str = ""


class JsonExtraction(BaseModel):
    """Schema-driven JSON extraction of a search results page."""

    kind: Literal["json_extraction"] = "json_extraction"
    jobs: list[dict] = Field(default_factory=list)
    source_url: str = ""


class MarkdownExtraction(BaseModel):
    """Markdown rendering of a page plus its metadata (title, og tags, sourceURL)."""

    kind: Literal["markdown"] = "markdown"
    markdown: str = ""
    metadata: dict = Field(default_factory=dict)
    html: str = ""
    source_url: str = ""


class JobLink(BaseModel):
    url: str
    text: str = ""


class LinkList(BaseModel):
    """Hyperlinks harvested from a search results page."""

    kind: Literal["link_list"] = "link_list"
    links: list[JobLink] = Field(default_factory=list)
    source_url: str = ""


RawPayload = Annotated[
    Union[JobSearchResults, JsonExtraction, MarkdownExtraction, LinkList],
    Field(discriminator="kind"),
]


class ExtractionResult(BaseModel):
    """Outcome of one search unit's extraction: zero or more payloads."""

    success: bool = True
    payloads: list[RawPayload] = Field(default_factory=list)
    error: Optional[str] = None
