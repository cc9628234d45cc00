from __future__ import annotations

from typing import Iterable, Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from groupcast.db_session import create_tables
from groupcast.errors import StaleConnectionError
from groupcast.services.membership_store import SQLMembershipStore


class RecordingPush:
    """Push delivery double that records every attempt and fails on request."""

    def __init__(self, gone: Iterable[str] = (), broken: Iterable[str] = ()) -> None:
        self.gone = set(gone)
        self.broken = set(broken)
        self.calls: list[tuple[str, bytes]] = []

    async def post_to_connection(self, connection_id: str, data: bytes) -> None:
        self.calls.append((connection_id, data))
        if connection_id in self.gone:
            raise StaleConnectionError(connection_id)
        if connection_id in self.broken:
            raise RuntimeError("connection reset by peer")

    def received_by(self, connection_id: str) -> list[bytes]:
        return [data for target, data in self.calls if target == connection_id]


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def store(engine: Engine) -> SQLMembershipStore:
    return SQLMembershipStore(engine)
