from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration loaded from environment variables or a .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    table_name: str = Field("group_memberships", description="Membership table holding (group, connection) rows")
    database_url: Optional[str] = Field(None, description="Full SQLAlchemy URL; overrides the PG* settings")
    pg_host: Optional[str] = Field(None, description="Postgres host (PGHOST)")
    pg_database: Optional[str] = Field(None, description="Postgres database name (PGDATABASE)")
    pg_port: int = Field(5432, description="Postgres port (PGPORT)")
    pg_user: Optional[str] = Field(None, description="Postgres user (PGUSER)")
    pg_password: Optional[str] = Field(None, description="Postgres password (PGPASSWORD)")
    pg_sslmode: Optional[str] = Field(None, description="Postgres sslmode, defaults to require")
    pg_channelbinding: Optional[str] = Field(None, description="Postgres channel_binding, defaults to require")
    database_echo: bool = Field(False, description="Echo SQL statements to the log")
    push_endpoint_url: Optional[str] = Field(
        None,
        description="Gateway management endpoint for out-of-band pushes. Unset means sockets are held in-process",
    )
    push_timeout_seconds: float = Field(10.0, gt=0, description="Timeout applied to each HTTP push")
    log_level: str = Field("INFO", description="Root logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Cached accessor so dependency injection reuses the same Settings instance.
    """

    return Settings()
