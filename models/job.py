"""
Job data model — the canonical, storage-ready representation of one listing.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


DEFAULT_COMPANY = "Unknown Company"
DEFAULT_CATEGORY = "Learning & Development"


class LocationType(str, Enum):
    REMOTE = "Remote"
    ON_SITE = "On-site"
    HYBRID = "Hybrid"


class EmploymentType(str, Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    FREELANCE = "Freelance"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CanonicalJobRecord(BaseModel):
    """Represents a single job posting after parsing and normalization."""

    title: str = Field(min_length=1, description="Job title")
    company: str = Field(default=DEFAULT_COMPANY, description="Company name")
    location: str = Field(default="Unknown", description="Job location (city, state, Remote, etc.)")
    location_type: LocationType = Field(default=LocationType.ON_SITE)
    employment_type: EmploymentType = Field(default=EmploymentType.FULL_TIME)
    salary: Optional[str] = Field(default=None, description="Free-text salary")
    description: Optional[str] = Field(default=None, description="Truncated description")
    apply_url: Optional[str] = Field(default=None, description="Absolute URL to the posting")
    source: str = Field(min_length=1, description="Upstream provider, e.g. Indeed")
    external_id: str = Field(min_length=1, description="Provider-stable dedup key, scoped per source")
    category: str = Field(default=DEFAULT_CATEGORY)
    posted_at: datetime = Field(default_factory=_utcnow)

    # Raw "posted X ago" text, used by the recency filter and never persisted
    posted_text: Optional[str] = Field(default=None, exclude=True)

    @field_validator("title", "source", "external_id")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("company")
    @classmethod
    def _company_default(cls, value: str) -> str:
        return value.strip() or DEFAULT_COMPANY

    @field_validator("apply_url")
    @classmethod
    def _absolute_url(cls, value: Optional[str]) -> Optional[str]:
        if value and value.startswith(("http://", "https://")):
            return value
        return None

    def dedup_key(self) -> tuple[str, str]:
        """Composite identity: external id is only unique within its source."""
        return self.external_id, self.source

    def to_row(self) -> dict:
        """Column mapping for the `jobs` table."""
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "location_type": self.location_type.value,
            "employment_type": self.employment_type.value,
            "salary": self.salary,
            "description": self.description,
            "apply_url": self.apply_url,
            "source": self.source,
            "external_id": self.external_id,
            "category": self.category,
            "posted_at": self.posted_at.isoformat(),
        }
