"""Settings for the recipe store and logging setup."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class StoreSettings(BaseSettings):
    """Tunables for the cache, loader, repository, and HTTP transport.

    Every field can be overridden with a ``RECIPEBOX_``-prefixed environment
    variable, e.g. ``RECIPEBOX_CACHE_TTL_SECONDS=60``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECIPEBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Cache
    cache_ttl_seconds: float = 5 * 60
    cache_maxsize: int = 1024

    # Loader: one budget per retrieval strategy, escalating
    direct_timeout: float = 8.0
    encoded_timeout: float = 10.0
    verified_timeout: float = 15.0

    # Repository writes
    sync_strategy: Literal["immediate", "deferred"] = "immediate"
    optimistic_updates: bool = True
    sync_delay_seconds: float = 1.0
    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    # Ingredient parsing
    locale: Literal["en", "cs"] = "en"

    # GitHub transport
    github_api_base: str = "https://api.github.com"
    github_raw_base: str = "https://raw.githubusercontent.com"
    repo_owner: str = "etancik"
    repo_name: str = "Kuchtik"
    branch: str = "main"
    recipes_dir: str = "recipes"
    http_timeout: float = 10.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> StoreSettings:
    """Get cached StoreSettings instance."""
    return StoreSettings()


def configure_logging(level: str | None = None) -> None:
    """Install the root handler used by applications embedding the store."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
