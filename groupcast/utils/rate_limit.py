from __future__ import annotations

from typing import Dict, Protocol

THROTTLE_MS = 1000


class RateLimiter(Protocol):
    """
    Per-connection send gate. A shared backend only has to honour the same allow() contract.
    """

    def allow(self, connection_id: str, now_ms: int) -> bool:
        ...


class InMemoryRateLimiter:
    """
    Process-local one-message-per-window limiter.

    Only accepted sends move the window; a rejected attempt is judged against the
    original accepted time. Calls run on the event loop without awaiting, so each
    check-and-set is atomic per process. Entries are never purged.
    """

    def __init__(self, window_ms: int = THROTTLE_MS) -> None:
        self._window_ms = window_ms
        self._last_accepted: Dict[str, int] = {}

    def allow(self, connection_id: str, now_ms: int) -> bool:
        last = self._last_accepted.get(connection_id)
        if last is not None and now_ms - last < self._window_ms:
            return False
        self._last_accepted[connection_id] = now_ms
        return True

    def clear(self) -> None:
        self._last_accepted.clear()

    def __len__(self) -> int:
        return len(self._last_accepted)
