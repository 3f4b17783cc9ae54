"""Consumer-facing chat client wiring the session, directory and buffer together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Callable, Sequence

from chat_sync.application.dto.identity import SessionIdentity
from chat_sync.application.dto.stats import SessionStats
from chat_sync.application.exceptions import (
    ChatSyncError,
    MalformedFrameError,
    ServerReportedError,
)
from chat_sync.application.ports.clock import Clock
from chat_sync.application.ports.transport import Connector
from chat_sync.config import Settings, settings as default_settings
from chat_sync.domain.entities.conversation import ConversationSummary
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.conversation_list import ConversationList
from chat_sync.domain.events.conversation_upserted import ConversationUpserted
from chat_sync.domain.events.new_message import NewMessage
from chat_sync.domain.events.past_messages import PastMessages
from chat_sync.domain.events.server_error import ServerError
from chat_sync.domain.value_objects.enums import ConnectionState
from chat_sync.infrastructure.ws.codec import decode_frame
from chat_sync.infrastructure.ws.websockets_transport import WebsocketsConnector
from chat_sync.services.conversation_directory import ConversationDirectory, ConversationsListener
from chat_sync.services.message_buffer import MessageBuffer, MessagesListener
from chat_sync.services.reconnect_policy import ReconnectPolicy
from chat_sync.services.subscription_manager import SubscriptionManager
from chat_sync.services.transport_session import TransportSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientHooks:
    on_state_change: Callable[[ConnectionState], None] | None = None
    on_error: Callable[[ChatSyncError], None] | None = None
    on_conversations: ConversationsListener | None = None
    on_messages: MessagesListener | None = None


class ChatClient:
    """Real-time chat synchronization client.

    Usage::

        async with ChatClient(identity) as client:
            await client.select_room(room_id, on_messages=render)
            await client.send_message("hi")
    """

    def __init__(
        self,
        identity: SessionIdentity | None,
        *,
        connector: Connector | None = None,
        settings: Settings | None = None,
        policy: ReconnectPolicy | None = None,
        clock: Clock | None = None,
        hooks: ClientHooks | None = None,
    ) -> None:
        cfg = settings or default_settings
        self._hooks = hooks or ClientHooks()
        self._error: ChatSyncError | None = None

        self._session = TransportSession(
            cfg.websocket_url,
            connector or WebsocketsConnector(
                token_param=cfg.WS_TOKEN_PARAM,
                open_timeout=cfg.WS_OPEN_TIMEOUT,
                ping_interval=cfg.WS_PING_INTERVAL,
            ),
            identity=identity,
            policy=policy or ReconnectPolicy.from_settings(cfg),
            clock=clock,
            intentional_close_codes=cfg.INTENTIONAL_CLOSE_CODES,
        )
        self._directory = ConversationDirectory(self._hooks.on_conversations)
        self._buffer = MessageBuffer(self._hooks.on_messages)
        self._subscriptions = SubscriptionManager(self._session, self._buffer)

        self._session.set_frame_handler(self._handle_frame)
        self._session.set_error_handler(self._report)
        self._session.add_state_listener(self._on_state_change)

    # Read access

    @property
    def connection_state(self) -> ConnectionState:
        return self._session.state

    @property
    def is_connected(self) -> bool:
        return self._session.state is ConnectionState.CONNECTED

    @property
    def conversations(self) -> list[ConversationSummary]:
        return self._directory.conversations

    @property
    def messages(self) -> list[Message]:
        return self._buffer.messages

    @property
    def current_room_id(self) -> str | None:
        return self._subscriptions.room_id

    @property
    def error(self) -> ChatSyncError | None:
        return self._error

    @property
    def stats(self) -> SessionStats:
        return self._session.stats

    @property
    def identity(self) -> SessionIdentity | None:
        return self._session.identity

    @property
    def session_id(self) -> str:
        return self._session.session_id

    def on_messages(self, listener: MessagesListener | None) -> None:
        self._buffer.set_listener(listener)

    # Actions

    async def connect(self) -> None:
        await self._session.connect()

    async def disconnect(self) -> None:
        """Close the socket and drop the room subscription, buffer and directory."""
        try:
            await self._session.disconnect()
        finally:
            self._subscriptions.clear()
            self._directory.clear()

    async def update_identity(self, identity: SessionIdentity | None) -> None:
        """Apply a logout or credential change reported by the auth provider."""
        if identity == self._session.identity:
            return
        if identity is None or not identity.is_present:
            logger.info("Identity cleared, tearing session down")
            await self.disconnect()
            self._session.identity = identity
            return
        was_active = self._session.state is not ConnectionState.DISCONNECTED
        self._session.identity = identity
        if was_active:
            logger.info("Credential changed, reconnecting")
            await self._session.disconnect()
            await self._session.connect()

    async def select_room(self, room_id: str, on_messages: MessagesListener | None = None) -> None:
        if on_messages is not None:
            self._buffer.set_listener(on_messages)
        await self._subscriptions.select_room(room_id)

    async def send_message(self, content: str | None, attachment_urls: Sequence[str] = ()) -> None:
        await self._subscriptions.send_message(content, attachment_urls)

    async def mark_read(self) -> None:
        room_id = await self._subscriptions.mark_read()
        self._directory.mark_read(room_id)

    async def __aenter__(self) -> ChatClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # Inbound

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            event = decode_frame(raw)
        except MalformedFrameError as exc:
            self._session.stats.frames_dropped += 1
            logger.warning("Dropping malformed frame: %s", exc.detail)
            return
        if event is None:
            self._session.stats.frames_dropped += 1
            return

        if isinstance(event, ConversationList):
            self._directory.replace_all(event.summaries)
        elif isinstance(event, ConversationUpserted):
            self._directory.apply_upsert(event)
        elif isinstance(event, PastMessages):
            self._buffer.replace(event.room_id, event.messages)
        elif isinstance(event, NewMessage):
            self._route_message(event.message)
        elif isinstance(event, ServerError):
            self._report(ServerReportedError(event.message))

    def _route_message(self, message: Message) -> None:
        if message.room_id == self._buffer.room_id:
            self._buffer.append(message)
            return
        identity = self._session.identity
        self._directory.note_message(
            message, own_user_id=identity.user_id if identity else None,
        )

    async def _on_state_change(self, state: ConnectionState) -> None:
        if state is ConnectionState.CONNECTED:
            self._error = None
        if self._hooks.on_state_change is not None:
            self._hooks.on_state_change(state)

    def _report(self, exc: ChatSyncError) -> None:
        self._error = exc
        logger.debug("Reporting %s: %s", type(exc).__name__, exc.detail)
        if self._hooks.on_error is not None:
            self._hooks.on_error(exc)
