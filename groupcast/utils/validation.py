from __future__ import annotations

import json
from typing import Optional, Union

from pydantic import ValidationError

from groupcast.errors import MessageValidationError
from groupcast.models import SendMessageRequest


def validate_message(raw: Optional[Union[str, bytes]]) -> SendMessageRequest:
    """
    Parse a raw client frame and check it against the message schema.

    Structural failures (not JSON at all) and schema failures both surface as
    MessageValidationError. Only the first schema violation is reported.
    """

    if not raw:
        raise MessageValidationError("Missing message body")

    try:
        data = json.loads(raw)
    except Exception as exc:  # noqa: BLE001
        raise MessageValidationError(f"Malformed message body: {exc}") from exc

    if not isinstance(data, dict):
        raise MessageValidationError("Message body must be a JSON object")

    try:
        return SendMessageRequest.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "body"
        raise MessageValidationError(f"Invalid {location}: {first['msg']}") from exc
