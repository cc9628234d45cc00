from __future__ import annotations

import asyncio
from enum import Enum
import logging

from groupcast.errors import StaleConnectionError, StoreError
from groupcast.models import DispatchReport, OutboundMessage
from groupcast.services.membership_store import MembershipStore
from groupcast.services.push_service import PushDelivery


class DeliveryOutcome(str, Enum):
    delivered = "delivered"
    evicted = "evicted"
    failed = "failed"
    eviction_failed = "eviction_failed"


class BroadcastDispatcher:
    """
    Fans one payload out to every member of a group.

    A broadcast counts as successful once every known member has been attempted.
    Recipients that turn out to be gone are evicted from the membership table on a
    best-effort basis; any other per-recipient failure is only logged.
    """

    def __init__(self, store: MembershipStore, push: PushDelivery) -> None:
        self._store = store
        self._push = push

    async def broadcast(self, group_id: str, payload: OutboundMessage) -> DispatchReport:
        members = sorted(self._store.members_of(group_id))
        report = DispatchReport(group_id=group_id, attempted=members)
        if not members:
            return report

        data = payload.model_dump_json().encode("utf-8")
        outcomes = await asyncio.gather(*(self._deliver(group_id, member, data) for member in members))

        for member, outcome in zip(members, outcomes):
            if outcome is DeliveryOutcome.delivered:
                report.delivered.append(member)
            elif outcome is DeliveryOutcome.evicted:
                report.evicted.append(member)
            elif outcome is DeliveryOutcome.eviction_failed:
                report.eviction_failures.append(member)
            else:
                report.failed.append(member)
        return report

    async def _deliver(self, group_id: str, connection_id: str, data: bytes) -> DeliveryOutcome:
        try:
            await self._push.post_to_connection(connection_id, data)
        except StaleConnectionError:
            return self._evict(group_id, connection_id)
        except Exception as exc:  # noqa: BLE001
            logging.error("Delivery to %s in group %s failed: %s", connection_id, group_id, exc)
            return DeliveryOutcome.failed
        return DeliveryOutcome.delivered

    def _evict(self, group_id: str, connection_id: str) -> DeliveryOutcome:
        try:
            self._store.remove(group_id, connection_id)
        except StoreError as exc:
            logging.warning("Eviction of stale connection %s from group %s failed: %s", connection_id, group_id, exc)
            return DeliveryOutcome.eviction_failed
        logging.info("Evicted stale connection %s from group %s", connection_id, group_id)
        return DeliveryOutcome.evicted
