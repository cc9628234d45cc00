from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_ACTION = "sendMessage"
MAX_MESSAGE_LENGTH = 500


class SendMessageRequest(BaseModel):
    """
    Inbound chat frame as sent by clients. Only the camelCase wire names are accepted;
    unknown keys are ignored.
    """

    action: Literal["sendMessage"]
    group_id: str = Field(..., alias="groupId", min_length=1)
    user: str = Field(..., min_length=1, description="Display name of the sender")
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class OutboundMessage(BaseModel):
    user: str
    message: str
    timestamp: str = Field(..., description="Server receive time, ISO-8601 UTC with millisecond precision")


class DispatchReport(BaseModel):
    group_id: str
    attempted: List[str] = Field(default_factory=list)
    delivered: List[str] = Field(default_factory=list)
    evicted: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    eviction_failures: List[str] = Field(default_factory=list)


class EventResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode")
    body: Optional[str] = None


class ConnectEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId", min_length=1)
    group_id: Optional[str] = Field(None, alias="groupId")


class MessageEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId", min_length=1)
    body: Optional[str] = Field(None, description="Raw frame exactly as received from the client")


class DisconnectEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId", min_length=1)
