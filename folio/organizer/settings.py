"""Service configuration loaded from FOLIO_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from folio.organizer.models.enums import StoreBackend


class FolioSettings(BaseSettings):
    """Folio organizer settings.

    All fields are read from environment variables with the ``FOLIO_`` prefix.
    For example, ``FOLIO_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOLIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per log line instead of the colored text format."""

    # -- Storage ---------------------------------------------------------------
    store: StoreBackend = StoreBackend.MEMORY
    """``memory`` keeps everything in-process; ``sql`` requires ``database_url``."""

    database_url: str | None = None
    """PostgreSQL connection string (psycopg).  Required when ``store = "sql"``."""

    redis_url: str | None = None
    """Redis connection string.  Enables cross-process live updates for the SQL store."""

    poll_interval: float = 1.0
    """Seconds between re-queries of a live view when Redis is not configured."""

    batch_chunk_size: int = 450
    """Writes per batch in cascading deletes; kept below the store's 500-op ceiling."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000


def get_settings() -> FolioSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> FolioSettings:
    return FolioSettings()
