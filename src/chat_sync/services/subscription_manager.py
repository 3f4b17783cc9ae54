from __future__ import annotations

import logging
from typing import Sequence

from chat_sync.application.dto.intents import MarkRead, SendMessage, Subscribe
from chat_sync.application.exceptions import (
    ConnectionLostError,
    NoRoomSelectedError,
    NotConnectedError,
    ValidationError,
)
from chat_sync.domain.value_objects.enums import ConnectionState
from chat_sync.services.message_buffer import MessageBuffer
from chat_sync.services.transport_session import TransportSession

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Keeps exactly one active room and makes sure the server knows about it.

    The subscribe intent stays pending until it has been written to a live
    connection, and it becomes pending again whenever the connection drops,
    so every transition into CONNECTED replays it.
    """

    def __init__(self, session: TransportSession, buffer: MessageBuffer) -> None:
        self._session = session
        self._buffer = buffer
        self._room_id: str | None = None
        self._pending = False
        session.add_state_listener(self.on_state_change)

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def pending(self) -> bool:
        return self._pending

    async def select_room(self, room_id: str) -> None:
        if not room_id:
            raise ValidationError("room id must not be empty")
        self._room_id = room_id
        self._pending = True
        # Cleared before any await: no message of the previous room survives.
        self._buffer.reset(room_id)
        if self._session.state is ConnectionState.CONNECTED:
            await self._flush()
        else:
            logger.info("Subscribe to %s queued until connected", room_id)

    async def send_message(self, content: str | None, attachment_urls: Sequence[str] = ()) -> None:
        room_id = self._require_room("message not sent")
        if not content and not attachment_urls:
            raise ValidationError("message has neither content nor attachments")
        await self._session.send(SendMessage(
            content=content,
            attachment_urls=tuple(attachment_urls),
            room_id=room_id,
        ))

    async def mark_read(self) -> str:
        room_id = self._require_room("cannot mark as read")
        await self._session.send(MarkRead())
        return room_id

    def clear(self) -> None:
        self._room_id = None
        self._pending = False
        self._buffer.reset(None)

    async def on_state_change(self, state: ConnectionState) -> None:
        if state is ConnectionState.CONNECTED:
            await self._flush()
        elif self._room_id is not None:
            self._pending = True

    def _require_room(self, action: str) -> str:
        if self._room_id is None:
            raise NoRoomSelectedError(f"{action}: no room selected")
        if self._session.state is not ConnectionState.CONNECTED:
            raise NotConnectedError(f"{action}: not connected")
        return self._room_id

    async def _flush(self) -> None:
        room_id = self._room_id
        if room_id is None or not self._pending:
            return
        try:
            await self._session.send(Subscribe(room_id=room_id))
        except (NotConnectedError, ConnectionLostError) as exc:
            logger.info("Subscribe to %s deferred: %s", room_id, exc.detail)
            return
        # A newer select_room() may have replaced the room while we were sending.
        if self._room_id == room_id:
            self._pending = False
        logger.info("Subscribed to room %s", room_id)
