from __future__ import annotations

from typing import Optional

from groupcast.db_models import Membership
from groupcast.services.membership_store import MembershipStore

DEFAULT_GROUP = "default"


class MembershipService:
    """
    Join and leave handling.

    Leave assumes a connection belongs to at most one group. If a connection were ever
    recorded under two groups, only the first row found would be removed.
    """

    def __init__(self, store: MembershipStore) -> None:
        self._store = store

    def join(self, connection_id: str, group_id: Optional[str] = None) -> str:
        group = group_id or DEFAULT_GROUP
        self._store.join(group, connection_id)
        return group

    def leave(self, connection_id: str) -> Optional[Membership]:
        membership = self._store.find_group_for(connection_id)
        if membership is None:
            return None
        self._store.remove(membership.group_id, connection_id)
        return membership
