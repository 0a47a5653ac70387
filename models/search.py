"""
Search space and invocation models.

The search space is the cartesian product of search terms and locations.
Its ordering is stable so that a batch index means the same thing across
separate invocations.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_SEARCH_TERMS = (
    "Instructional Designer",
    "Learning and Development",
    "Training Specialist",
    "Corporate Trainer",
    "eLearning Developer",
    "Learning Experience Designer",
    "Training Manager",
    "Learning and Development Manager",
    "Curriculum Developer",
    "Talent Development Specialist",
)

DEFAULT_LOCATIONS = (
    "Remote",
    "Florida",
    "Tampa, FL",
    "Orlando, FL",
    "Miami, FL",
    "Jacksonville, FL",
)


def _clean_list(values) -> tuple[str, ...]:
    cleaned = []
    for value in values or ():
        value = str(value).strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return tuple(cleaned)


class SearchUnit(BaseModel):
    """One (term, location) pair; consumed once per invocation, never persisted."""

    model_config = ConfigDict(frozen=True)

    term: str
    location: str

    @property
    def query(self) -> str:
        return f"{self.term} in {self.location}"


class SearchConfig(BaseModel):
    """Explicit search space for one invocation. Empty lists fall back to the defaults."""

    model_config = ConfigDict(frozen=True)

    search_terms: tuple[str, ...] = DEFAULT_SEARCH_TERMS
    locations: tuple[str, ...] = DEFAULT_LOCATIONS

    @field_validator("search_terms", mode="before")
    @classmethod
    def _terms(cls, value):
        return _clean_list(value) or DEFAULT_SEARCH_TERMS

    @field_validator("locations", mode="before")
    @classmethod
    def _locations(cls, value):
        return _clean_list(value) or DEFAULT_LOCATIONS

    def units(self) -> list[SearchUnit]:
        """Every (location × term) combination, location-major."""
        return [
            SearchUnit(term=term, location=location)
            for location in self.locations
            for term in self.search_terms
        ]


class ScrapeRequest(BaseModel):
    """Body of a scrape invocation. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    search_terms: Optional[list[str]] = Field(default=None, alias="searchTerms")
    locations: Optional[list[str]] = None
    batch_index: int = Field(default=0, ge=0, alias="batchIndex")

    def search_config(self, fallback: Optional[SearchConfig] = None) -> SearchConfig:
        fallback = fallback or SearchConfig()
        return SearchConfig(
            search_terms=self.search_terms or fallback.search_terms,
            locations=self.locations or fallback.locations,
        )


class ScrapeResponse(BaseModel):
    """Success response of one batch invocation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    inserted: int = 0
    skipped: int = 0
    total_found: int = 0
    has_more: bool = Field(default=False, alias="hasMore")
    next_batch_index: Optional[int] = Field(default=None, alias="nextBatchIndex")
    progress: str = ""

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
