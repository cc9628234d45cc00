from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from groupcast.db_models import Membership
from groupcast.errors import StoreError
from groupcast.services.membership_store import SQLMembershipStore


def _rows(store: SQLMembershipStore) -> list[tuple[str, str]]:
    with Session(store._engine) as session:
        return [(row.group_id, row.connection_id) for row in session.exec(select(Membership)).all()]


def test_members_of_unknown_group_is_empty(store: SQLMembershipStore) -> None:
    assert store.members_of("nobody-here") == set()


def test_join_is_visible_to_members_of(store: SQLMembershipStore) -> None:
    store.join("g1", "A")
    store.join("g1", "B")
    store.join("g2", "C")
    assert store.members_of("g1") == {"A", "B"}
    assert store.members_of("g2") == {"C"}


def test_join_twice_keeps_one_record(store: SQLMembershipStore) -> None:
    store.join("g1", "A")
    store.join("g1", "A")
    assert _rows(store) == [("g1", "A")]


def test_remove_is_idempotent(store: SQLMembershipStore) -> None:
    store.join("g1", "A")
    store.remove("g1", "A")
    store.remove("g1", "A")
    store.remove("g1", "never-joined")
    assert store.members_of("g1") == set()


def test_find_group_for_returns_the_record(store: SQLMembershipStore) -> None:
    store.join("g1", "A")
    store.join("g2", "B")
    membership = store.find_group_for("B")
    assert membership is not None
    assert (membership.group_id, membership.connection_id) == ("g2", "B")
    assert store.find_group_for("missing") is None


def test_sqlalchemy_failures_become_store_errors(store: SQLMembershipStore, monkeypatch: pytest.MonkeyPatch) -> None:
    def _broken_exec(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "exec", _broken_exec)
    with pytest.raises(StoreError):
        store.members_of("g1")
    with pytest.raises(StoreError):
        store.find_group_for("A")
