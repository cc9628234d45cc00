from __future__ import annotations

import os
import time
import uuid

from sqlmodel import Field, SQLModel

from groupcast.config import get_settings


def uuid7() -> uuid.UUID:
    timestamp_ms = int(time.time() * 1000) & ((1 << 48) - 1)
    rand_a = int.from_bytes(os.urandom(2), "big") & 0x0FFF
    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (timestamp_ms << 80) | (0x7 << 76) | (rand_a << 64) | (0x2 << 62) | rand_b
    return uuid.UUID(int=value)


class Membership(SQLModel, table=True):
    """
    One live connection inside one group.

    The table is keyed by group first so fanout reads are a primary-key range scan. There is
    deliberately no index on connection_id: reverse lookups only happen on disconnect.
    A connection is expected to hold at most one row.
    """

    __tablename__ = get_settings().table_name

    group_id: str = Field(primary_key=True)
    connection_id: str = Field(primary_key=True)
