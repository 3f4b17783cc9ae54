from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.application.dto.intents import Intent, MarkRead, SendMessage, Subscribe
from chat_sync.domain.entities.conversation import (
    MERGEABLE_FIELDS,
    ConversationSummary,
    LastMessagePreview,
)
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.conversation_list import ConversationList
from chat_sync.domain.events.conversation_upserted import ConversationUpserted
from chat_sync.domain.events.new_message import NewMessage
from chat_sync.domain.events.past_messages import PastMessages
from chat_sync.domain.events.server_error import ServerError
from chat_sync.infrastructure.ws.protocol import (
    ConversationListFrame,
    ConversationPayload,
    ErrorFrame,
    InboundFrame,
    LastMessagePayload,
    MessagePayload,
    NewConversationFrame,
    NewMessageFrame,
    OutboundFrame,
    PastMessagesFrame,
    ReadMessageFrame,
    SendMessageFrame,
    SubscribeFrame,
)

InboundEvent = ConversationList | PastMessages | NewMessage | ConversationUpserted | ServerError


def _as_utc(ts: datetime | None) -> datetime | None:
    if ts is not None and ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def payload_to_message(payload: MessagePayload) -> Message:
    return Message(
        id=payload.id,
        content=payload.content,
        sender_id=payload.sender_id,
        room_id=payload.room_id,
        created_at=_as_utc(payload.created_at),
        attachment_urls=tuple(payload.file_url),
        is_read=payload.is_read,
    )


def _preview(payload: LastMessagePayload | None) -> LastMessagePreview | None:
    if payload is None:
        return None
    return LastMessagePreview(content=payload.content, created_at=_as_utc(payload.created_at))


def payload_to_summary(payload: ConversationPayload) -> ConversationSummary:
    return ConversationSummary(
        id=payload.id,
        name=payload.name,
        photo=payload.photo,
        is_active=payload.is_active,
        unread_count=max(payload.unread_count, 0),
        last_message=_preview(payload.last_message),
        created_at=_as_utc(payload.created_at),
    )


def frame_to_event(frame: InboundFrame) -> InboundEvent:
    if isinstance(frame, ConversationListFrame):
        return ConversationList(
            summaries=tuple(payload_to_summary(c) for c in frame.conversations),
        )
    if isinstance(frame, PastMessagesFrame):
        return PastMessages(
            room_id=frame.room_id,
            messages=tuple(payload_to_message(m) for m in frame.messages),
        )
    if isinstance(frame, NewMessageFrame):
        return NewMessage(message=payload_to_message(frame.message))
    if isinstance(frame, NewConversationFrame):
        payload = frame.conversations
        return ConversationUpserted(
            summary=payload_to_summary(payload),
            unread_delta=payload.count_increase_by,
            fields=frozenset(payload.model_fields_set & MERGEABLE_FIELDS),
        )
    if isinstance(frame, ErrorFrame):
        return ServerError(message=frame.message)
    raise TypeError(f"Unsupported frame: {type(frame).__name__}")


def intent_to_frame(intent: Intent) -> OutboundFrame:
    if isinstance(intent, Subscribe):
        return SubscribeFrame(room_id=intent.room_id)
    if isinstance(intent, SendMessage):
        return SendMessageFrame(
            content=intent.content,
            file_url=list(intent.attachment_urls),
            room_id=intent.room_id,
        )
    if isinstance(intent, MarkRead):
        return ReadMessageFrame()
    raise TypeError(f"Unsupported intent: {type(intent).__name__}")
