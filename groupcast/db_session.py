from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine, make_url
from sqlmodel import create_engine

from groupcast.config import Settings, get_settings


def _build_database_url(settings: Settings) -> Optional[str]:
    """
    DATABASE_URL wins; otherwise assemble a psycopg URL from the PG* settings.
    """

    if settings.database_url:
        return settings.database_url
    if not (settings.pg_host and settings.pg_database and settings.pg_user and settings.pg_password):
        return None
    return (
        f"postgresql+psycopg://{settings.pg_user}:{settings.pg_password}"
        f"@{settings.pg_host}:{settings.pg_port}/{settings.pg_database}"
        f"?sslmode={settings.pg_sslmode or 'require'}&channel_binding={settings.pg_channelbinding or 'require'}"
    )


def _engine_options(database_url: str) -> Dict[str, Any]:
    # FastAPI resolves sync dependencies in a worker thread, so SQLite connections cross threads.
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    database_url = _build_database_url(settings)
    if not database_url:
        raise RuntimeError("Membership store is not configured. Set DATABASE_URL or PGHOST/PGDATABASE/PGUSER/PGPASSWORD.")
    return create_engine(database_url, echo=settings.database_echo, **_engine_options(database_url))


def create_tables(engine: Engine) -> None:
    """
    Create the membership table directly, for local runs and tests. Deployed databases use Alembic.
    """

    from groupcast.db_models import Membership

    Membership.metadata.create_all(engine, tables=[Membership.__table__])
