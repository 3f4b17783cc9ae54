"""WebSocket frame models (camelCase on the wire)."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class MessagePayload(WireModel):
    id: str
    content: str | None = None
    sender_id: str
    room_id: str
    created_at: datetime
    file_url: list[str] = []
    is_read: bool = False


class LastMessagePayload(WireModel):
    content: str | None = None
    created_at: datetime | None = None


class ConversationPayload(WireModel):
    id: str
    name: str = ""
    photo: str | None = None
    is_active: bool = False
    unread_count: int = 0
    last_message: LastMessagePayload | None = None
    created_at: datetime | None = None


class ConversationUpsertPayload(ConversationPayload):
    count_increase_by: int = 0


# Server → Client


class ConversationListFrame(WireModel):
    type: Literal["conversation-list"]
    conversations: list[ConversationPayload] = []


class PastMessagesFrame(WireModel):
    type: Literal["past-messages"]
    room_id: str
    messages: list[MessagePayload] = []


class NewMessageFrame(WireModel):
    type: Literal["new-message"]
    message: MessagePayload


class NewConversationFrame(WireModel):
    type: Literal["new-conversation"]
    conversations: ConversationUpsertPayload


class ErrorFrame(WireModel):
    type: Literal["error"]
    message: str = ""


InboundFrame = Annotated[
    Union[
        ConversationListFrame,
        PastMessagesFrame,
        NewMessageFrame,
        NewConversationFrame,
        ErrorFrame,
    ],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)


# Client → Server


class SubscribeFrame(WireModel):
    type: Literal["subscribe"] = "subscribe"
    room_id: str


class SendMessageFrame(WireModel):
    type: Literal["send-message"] = "send-message"
    content: str | None
    file_url: list[str] = []
    room_id: str


class ReadMessageFrame(WireModel):
    type: Literal["read-message"] = "read-message"


OutboundFrame = SubscribeFrame | SendMessageFrame | ReadMessageFrame
