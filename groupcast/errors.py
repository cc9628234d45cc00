from __future__ import annotations


class RelayError(Exception):
    """Base class for failures raised by the relay core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MessageValidationError(RelayError):
    """Raised when an inbound frame is missing, is not JSON, or does not match the message schema."""


class ThrottledError(RelayError):
    """Raised when a connection sends again inside its rate-limit window."""

    def __init__(self, connection_id: str):
        super().__init__("Too many messages. Slow down.")
        self.connection_id = connection_id


class StaleConnectionError(RelayError):
    """Raised by push delivery when the target connection no longer exists."""

    def __init__(self, connection_id: str):
        super().__init__(f"Connection {connection_id} is gone")
        self.connection_id = connection_id


class DeliveryError(RelayError):
    """Raised by push delivery for any failure other than a gone connection."""


class StoreError(RelayError):
    """Raised when the membership store cannot complete an operation."""
