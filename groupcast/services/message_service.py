from __future__ import annotations

from datetime import datetime, timezone
import time
from typing import Callable, Optional, Union

from groupcast.errors import MessageValidationError, ThrottledError
from groupcast.models import DispatchReport, OutboundMessage
from groupcast.services.broadcast_service import BroadcastDispatcher
from groupcast.utils.rate_limit import RateLimiter
from groupcast.utils.validation import validate_message


def _now_ms() -> int:
    return int(time.time() * 1000)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(tz=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MessageService:
    def __init__(
        self,
        dispatcher: BroadcastDispatcher,
        rate_limiter: RateLimiter,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._dispatcher = dispatcher
        self._rate_limiter = rate_limiter
        self._clock = clock

    async def send(self, connection_id: str, raw: Optional[Union[str, bytes]]) -> DispatchReport:
        """
        Validate, throttle and broadcast one inbound frame.

        Raises MessageValidationError or ThrottledError for the sender's own mistakes;
        recipient-side failures only show up in the returned report.
        """

        if not raw:
            raise MessageValidationError("Missing message body")
        request = validate_message(raw)

        if not self._rate_limiter.allow(connection_id, self._clock()):
            raise ThrottledError(connection_id)

        payload = OutboundMessage(user=request.user, message=request.message, timestamp=utc_timestamp())
        return await self._dispatcher.broadcast(request.group_id, payload)
