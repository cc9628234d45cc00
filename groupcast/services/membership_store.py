from __future__ import annotations

from typing import Optional, Protocol, Set

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from groupcast.db_models import Membership
from groupcast.errors import StoreError


class MembershipStore(Protocol):
    def join(self, group_id: str, connection_id: str) -> None:
        ...

    def members_of(self, group_id: str) -> Set[str]:
        ...

    def remove(self, group_id: str, connection_id: str) -> None:
        ...

    def find_group_for(self, connection_id: str) -> Optional[Membership]:
        ...


class SQLMembershipStore:
    """
    SQLModel-backed membership table. Each call opens its own short session and
    SQLAlchemy failures are re-raised as StoreError without retrying.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def join(self, group_id: str, connection_id: str) -> None:
        try:
            with Session(self._engine) as session:
                session.merge(Membership(group_id=group_id, connection_id=connection_id))
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to join {connection_id} to group {group_id}: {exc}") from exc

    def members_of(self, group_id: str) -> Set[str]:
        try:
            with Session(self._engine) as session:
                rows = session.exec(
                    select(Membership.connection_id).where(Membership.group_id == group_id)
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list members of group {group_id}: {exc}") from exc
        return set(rows)

    def remove(self, group_id: str, connection_id: str) -> None:
        try:
            with Session(self._engine) as session:
                membership = session.get(Membership, (group_id, connection_id))
                if membership is None:
                    return
                session.delete(membership)
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to remove {connection_id} from group {group_id}: {exc}") from exc

    def find_group_for(self, connection_id: str) -> Optional[Membership]:
        # Full scan: connection_id is not indexed.
        try:
            with Session(self._engine) as session:
                return session.exec(
                    select(Membership).where(Membership.connection_id == connection_id)
                ).first()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to look up group for {connection_id}: {exc}") from exc
