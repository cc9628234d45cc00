from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import status

from groupcast.errors import MessageValidationError, StoreError, ThrottledError
from groupcast.models import EventResult
from groupcast.services.membership_service import MembershipService
from groupcast.services.message_service import MessageService


class RelayService:
    """
    Entry point for the three transport events. Every event resolves to a status code;
    store failures on the caller's own request become 500.
    """

    def __init__(self, membership: MembershipService, messages: MessageService) -> None:
        self._membership = membership
        self._messages = messages

    def on_connect(self, connection_id: str, group_id: Optional[str] = None) -> EventResult:
        try:
            self._membership.join(connection_id, group_id)
        except StoreError as exc:
            logging.error("Join failed for %s: %s", connection_id, exc.message)
            return _internal_error()
        return EventResult(status_code=status.HTTP_200_OK)

    async def on_message(self, connection_id: str, raw: Optional[Union[str, bytes]]) -> EventResult:
        try:
            await self._messages.send(connection_id, raw)
        except MessageValidationError as exc:
            logging.warning("Rejected message from %s: %s", connection_id, exc.message)
            return EventResult(status_code=status.HTTP_400_BAD_REQUEST, body=exc.message)
        except ThrottledError as exc:
            return EventResult(status_code=status.HTTP_429_TOO_MANY_REQUESTS, body=exc.message)
        except StoreError as exc:
            logging.error("Broadcast from %s failed: %s", connection_id, exc.message)
            return _internal_error()
        return EventResult(status_code=status.HTTP_200_OK)

    def on_disconnect(self, connection_id: str) -> EventResult:
        try:
            self._membership.leave(connection_id)
        except StoreError as exc:
            logging.error("Leave failed for %s: %s", connection_id, exc.message)
            return _internal_error()
        return EventResult(status_code=status.HTTP_200_OK)


def _internal_error() -> EventResult:
    return EventResult(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, body="Internal server error")
