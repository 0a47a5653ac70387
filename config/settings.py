"""
Configuration settings for the job scraper.
Loads values from .env file and provides typed access.
"""

import logging
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Determine project root
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
env_path = os.path.join(project_root, ".env")
load_dotenv(env_path)


STRATEGIES = ("job_search", "extract", "markdown", "links")
FIRECRAWL_STRATEGIES = ("extract", "markdown", "links")
STORAGE_BACKENDS = ("supabase", "sqlite")


class ConfigurationError(Exception):
    """A required configuration value is missing or invalid."""


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Extraction
    extraction_strategy: str = field(
        default_factory=lambda: os.getenv("EXTRACTION_STRATEGY", "job_search")
    )
    rapidapi_key: str = field(
        default_factory=lambda: os.getenv("RAPIDAPI_KEY") or os.getenv("JSEARCH_API_KEY", "")
    )
    jsearch_host: str = field(
        default_factory=lambda: os.getenv("JSEARCH_HOST", "jsearch.p.rapidapi.com")
    )
    firecrawl_api_key: str = field(
        default_factory=lambda: os.getenv("FIRECRAWL_API_KEY", "")
    )

    # Storage
    storage_backend: str = field(
        default_factory=lambda: os.getenv("STORAGE_BACKEND", "supabase")
    )
    supabase_url: str = field(
        default_factory=lambda: os.getenv("SUPABASE_URL", "")
    )
    supabase_service_role_key: str = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    )
    db_path: str = field(
        default_factory=lambda: os.getenv("JOBS_DB_PATH", os.path.join(project_root, "data", "jobs.db"))
    )

    # Scraping Configuration
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "60"))
    )
    request_delay: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_DELAY", "0.4"))
    )
    batch_size: int = field(
        default_factory=lambda: int(os.getenv("BATCH_SIZE", "3"))
    )
    max_links_per_search: int = field(
        default_factory=lambda: int(os.getenv("MAX_LINKS_PER_SEARCH", "10"))
    )
    fetch_link_details: bool = field(
        default_factory=lambda: _env_bool("FETCH_LINK_DETAILS", "true")
    )

    # Records
    description_max_length: int = field(
        default_factory=lambda: int(os.getenv("DESCRIPTION_MAX_LENGTH", "500"))
    )
    recency_window_days: int = field(
        default_factory=lambda: int(os.getenv("RECENCY_WINDOW_DAYS", "30"))
    )
    job_category: str = field(
        default_factory=lambda: os.getenv("JOB_CATEGORY", "Learning & Development")
    )

    # Paths
    search_config_path: str = field(
        default_factory=lambda: os.getenv("SEARCH_CONFIG_PATH", "")
    )

    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    def missing_required(self) -> list[str]:
        """Return the env var names the selected strategy and backend need but lack."""
        missing = []
        if self.extraction_strategy == "job_search" and not self.rapidapi_key:
            missing.append("RAPIDAPI_KEY")
        if self.extraction_strategy in FIRECRAWL_STRATEGIES and not self.firecrawl_api_key:
            missing.append("FIRECRAWL_API_KEY")
        if self.storage_backend == "supabase":
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_role_key:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        elif self.storage_backend == "sqlite" and not self.db_path:
            missing.append("JOBS_DB_PATH")
        return missing

    def validate(self) -> None:
        """Raise ConfigurationError if anything required for a run is absent."""
        if self.extraction_strategy not in STRATEGIES:
            raise ConfigurationError(
                f"Unknown EXTRACTION_STRATEGY {self.extraction_strategy!r} "
                f"(expected one of: {', '.join(STRATEGIES)})"
            )
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unknown STORAGE_BACKEND {self.storage_backend!r} "
                f"(expected one of: {', '.join(STORAGE_BACKENDS)})"
            )
        if self.batch_size < 1:
            raise ConfigurationError("BATCH_SIZE must be at least 1")

        missing = self.missing_required()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr with a single, compact format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


# Singleton instance
settings = Settings()
