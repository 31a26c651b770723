"""Migrations for the ``documents`` table, driven by ``FOLIO_DATABASE_URL``."""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from folio.organizer.db.tables import Base
from folio.organizer.settings import FolioSettings

_SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql+psycopg://",
    "sqlite+aiosqlite://": "sqlite://",
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def sync_url() -> str:
    url = FolioSettings().database_url
    if not url:
        msg = "FOLIO_DATABASE_URL is not set. Cannot run migrations."
        raise RuntimeError(msg)
    for async_prefix, sync_prefix in _SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            return sync_prefix + url[len(async_prefix) :]
    return url


def _only_documents(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    # Foreign tables sharing the database are never touched.
    return not (type_ == "table" and reflected and compare_to is None)


def _migrate(**options: Any) -> None:
    context.configure(target_metadata=Base.metadata, include_object=_only_documents, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _migrate(url=sync_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    with create_engine(sync_url(), poolclass=pool.NullPool).connect() as connection:
        _migrate(connection=connection)
