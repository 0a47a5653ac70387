"""
Per-invocation dependencies handed to every node through the LangGraph config.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx
from langchain_core.runnables import RunnableConfig

from config.settings import Settings
from tools.job_store import SQLiteJobStore


logger = logging.getLogger(__name__)


@dataclass
class ScrapeContext:
    """Settings, storage and HTTP transport for one batch invocation."""

    settings: Settings
    store: object
    http_client: Optional[httpx.Client] = None
    sleep: Callable[[float], None] = time.sleep
    calls_made: int = field(default=0, init=False)

    def throttle(self) -> None:
        """Wait the configured delay before every outbound call but the first."""
        if self.calls_made and self.settings.request_delay > 0:
            self.sleep(self.settings.request_delay)
        self.calls_made += 1


def open_store(settings: Settings):
    """Storage backend selected by settings.storage_backend."""
    logger.info("[Context] Using %s storage", settings.storage_backend)
    if settings.storage_backend == "sqlite":
        return SQLiteJobStore(settings.db_path)

    from tools.supabase_store import SupabaseJobStore

    return SupabaseJobStore(settings.supabase_url, settings.supabase_service_role_key)


def build_context(
    settings: Settings,
    store=None,
    http_client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ScrapeContext:
    """Validate configuration and assemble the context. Raises ConfigurationError."""
    settings.validate()
    if store is None:
        store = open_store(settings)
    return ScrapeContext(settings=settings, store=store, http_client=http_client, sleep=sleep)


def get_context(config: RunnableConfig) -> ScrapeContext:
    return config["configurable"]["context"]
