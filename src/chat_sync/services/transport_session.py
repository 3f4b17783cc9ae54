"""Owns the single chat socket: lifecycle, reader loop and reconnect policy."""
from __future__ import annotations

import asyncio
import contextvars
import logging
import uuid
from typing import Awaitable, Callable, Iterable

from chat_sync.application.dto.identity import SessionIdentity
from chat_sync.application.dto.intents import Intent
from chat_sync.application.dto.stats import SessionStats
from chat_sync.application.exceptions import (
    AuthenticationMissingError,
    ChatSyncError,
    ConnectionFailedError,
    ConnectionLostError,
    NotConnectedError,
    PersistentFailureError,
)
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.application.ports.transport import Connection, Connector, TransportClosed
from chat_sync.domain.value_objects.enums import CloseCode, ConnectionState
from chat_sync.infrastructure.observability.session_context import session_id_ctx
from chat_sync.infrastructure.ws.codec import encode_intent
from chat_sync.services.reconnect_policy import ReconnectPolicy

logger = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], Awaitable[None]]
FrameHandler = Callable[[str | bytes], None]
ErrorHandler = Callable[[ChatSyncError], None]


class TransportSession:
    """One persistent connection per instance.

    Inbound frames are handed to the frame handler one at a time, in
    arrival order, from a single reader task. State transitions are
    awaited on every registered listener before the reader resumes.
    """

    def __init__(
        self,
        url: str,
        connector: Connector,
        *,
        identity: SessionIdentity | None = None,
        policy: ReconnectPolicy | None = None,
        clock: Clock | None = None,
        intentional_close_codes: Iterable[int] = (CloseCode.NORMAL,),
        session_id: str | None = None,
    ) -> None:
        self.url = url
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self.stats = SessionStats()
        self._connector = connector
        self._identity = identity
        self._policy = policy or ReconnectPolicy()
        self._clock = clock or SystemClock()
        self._intentional_codes = frozenset(int(c) for c in intentional_close_codes)

        self._state = ConnectionState.DISCONNECTED
        self._connection: Connection | None = None
        self._task: asyncio.Task[None] | None = None
        self._ready: asyncio.Future[None] | None = None
        self._attempts = 0
        self._closing = False

        self._state_listeners: list[StateListener] = []
        self._frame_handler: FrameHandler | None = None
        self._error_handler: ErrorHandler | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def identity(self) -> SessionIdentity | None:
        return self._identity

    @identity.setter
    def identity(self, identity: SessionIdentity | None) -> None:
        self._identity = identity

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def set_frame_handler(self, handler: FrameHandler | None) -> None:
        self._frame_handler = handler

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        self._error_handler = handler

    # Lifecycle

    async def connect(self) -> None:
        """Start the session and return once the first open attempt is over.

        The supervisor task is created before anything is awaited, so
        overlapping calls share one connection.
        """
        if not self._has_identity():
            await self._set_state(ConnectionState.DISCONNECTED)
            exc = AuthenticationMissingError("not authenticated")
            self._report(exc)
            raise exc
        if self._task is not None and not self._task.done():
            logger.debug("connect() joined, session already %s", self._state)
            if self._ready is not None and self._task is not asyncio.current_task():
                await asyncio.shield(self._ready)
            return

        self._closing = False
        self._attempts = 0
        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._ready = ready
        ctx = contextvars.copy_context()
        ctx.run(session_id_ctx.set, self.session_id)
        self._task = asyncio.create_task(
            self._supervise(ready),
            name=f"chat-sync-session-{self.session_id}",
            context=ctx,
        )
        self._task.add_done_callback(lambda _: _release(ready))
        await asyncio.shield(ready)

    async def disconnect(self) -> None:
        """Tear the session down; safe from any state, including mid-reconnect."""
        self._closing = True
        task, self._task = self._task, None
        connection, self._connection = self._connection, None
        current = asyncio.current_task()
        if task is not None and task is not current:
            task.cancel()
        try:
            if connection is not None:
                try:
                    await connection.close(CloseCode.NORMAL, "client disconnect")
                except TransportClosed:
                    pass
        finally:
            if task is not None and task is not current:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await self._set_state(ConnectionState.DISCONNECTED)
            logger.info("Session %s disconnected", self.session_id)

    async def send(self, intent: Intent) -> None:
        connection = self._connection
        if self._state is not ConnectionState.CONNECTED or connection is None:
            raise NotConnectedError(
                f"cannot send {type(intent).__name__} while {self._state}"
            )
        raw = encode_intent(intent)
        try:
            await connection.send_text(raw)
        except TransportClosed as exc:
            raise ConnectionLostError(
                f"connection lost while sending (code={exc.code})", code=exc.code,
            ) from exc
        self.stats.frames_sent += 1
        logger.debug("Sent %s", type(intent).__name__)

    # Internals

    def _has_identity(self) -> bool:
        return self._identity is not None and self._identity.is_present

    async def _open(self) -> Connection | None:
        identity = self._identity
        if identity is None or not identity.is_present:
            raise AuthenticationMissingError("identity removed before connecting")
        try:
            connection = await self._connector.open(self.url, identity.token)
        except ConnectionFailedError as exc:
            logger.warning("Connection attempt failed: %s", exc.detail)
            self._report(exc)
            return None
        if self._closing:
            await connection.close(CloseCode.NORMAL, "client disconnect")
            return None

        self._connection = connection
        self._attempts = 0
        self.stats.connects += 1
        self.stats.last_connected_at = self._clock.now()
        logger.info("Connected to %s", self.url)
        await self._set_state(ConnectionState.CONNECTED)
        return connection

    async def _supervise(self, ready: asyncio.Future[None]) -> None:
        try:
            await self._set_state(ConnectionState.CONNECTING)
            connection = await self._open()
            _release(ready)
            if self._closing:
                return
            while True:
                if connection is not None:
                    code = await self._pump(connection)
                    self._connection = None
                    if self._closing or code in self._intentional_codes or not self._has_identity():
                        logger.info("Connection closed (code=%s)", code)
                        await self._set_state(ConnectionState.DISCONNECTED)
                        return
                    logger.warning("Connection lost (code=%s)", code)
                    self._report(ConnectionLostError(f"connection lost (code={code})", code=code))

                if self._policy.exhausted(self._attempts):
                    logger.error("Giving up after %d reconnect attempt(s)", self._attempts)
                    await self._set_state(ConnectionState.DISCONNECTED)
                    self._report(PersistentFailureError(
                        f"could not reconnect after {self._attempts} attempt(s)",
                        attempts=self._attempts,
                    ))
                    return

                delay = self._policy.delay_for(self._attempts)
                self._attempts += 1
                self.stats.reconnect_attempts += 1
                await self._set_state(ConnectionState.RECONNECTING)
                logger.info(
                    "Reconnecting in %.2fs (attempt %d/%d)",
                    delay, self._attempts, self._policy.max_attempts,
                )
                await self._clock.sleep(delay)
                if self._closing or not self._has_identity():
                    await self._set_state(ConnectionState.DISCONNECTED)
                    return
                connection = await self._open()
        except AuthenticationMissingError as exc:
            logger.warning("Session stopped: %s", exc.detail)
            self._connection = None
            await self._set_state(ConnectionState.DISCONNECTED)
            self._report(exc)
        except Exception:
            logger.exception("Session supervisor crashed")
            self._connection = None
            await self._set_state(ConnectionState.DISCONNECTED)
            self._report(ConnectionLostError("session supervisor crashed"))

    async def _pump(self, connection: Connection) -> int | None:
        while True:
            try:
                raw = await connection.receive_text()
            except TransportClosed as exc:
                return exc.code
            self.stats.frames_received += 1
            if self._frame_handler is None:
                continue
            try:
                self._frame_handler(raw)
            except Exception:
                logger.exception("Error processing inbound frame")

    async def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        logger.info("Connection state %s -> %s", previous, state)
        for listener in list(self._state_listeners):
            try:
                await listener(state)
            except Exception:
                logger.exception("State listener failed")

    def _report(self, exc: ChatSyncError) -> None:
        if self._error_handler is None:
            return
        try:
            self._error_handler(exc)
        except Exception:
            logger.exception("Error handler failed")


def _release(ready: asyncio.Future[None]) -> None:
    if not ready.done():
        ready.set_result(None)
