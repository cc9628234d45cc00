from __future__ import annotations

from logging.config import fileConfig
import os
import sys

from alembic import context
from sqlalchemy import engine_from_config, pool

CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from groupcast.config import get_settings
from groupcast.db_models import Membership
from groupcast.db_session import _build_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
target_metadata = Membership.metadata
# The relay may share a database with other services; it only owns its membership table
# and keeps a version table named after it.
MEMBERSHIP_TABLE = settings.table_name
VERSION_TABLE = f"{MEMBERSHIP_TABLE}_alembic_version"


def include_object(object_, name, type_, reflected, compare_to) -> bool:
    if type_ == "table":
        return name == MEMBERSHIP_TABLE
    table = getattr(object_, "table", None)
    return table is None or table.name == MEMBERSHIP_TABLE


def get_url() -> str:
    database_url = _build_database_url(settings)
    if not database_url:
        raise RuntimeError("Membership store is not configured for Alembic migrations.")
    return database_url


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        version_table=VERSION_TABLE,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=get_url(), literal_binds=True)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        _configure(connection=connection)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
