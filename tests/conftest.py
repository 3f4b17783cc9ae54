"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio

from chat_sync.application.dto.identity import SessionIdentity
from chat_sync.application.exceptions import ChatSyncError, ConnectionFailedError
from chat_sync.application.ports.transport import TransportClosed
from chat_sync.client import ChatClient, ClientHooks
from chat_sync.config import Settings
from chat_sync.domain.entities.conversation import ConversationSummary
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import ConnectionState
from chat_sync.services.reconnect_policy import ReconnectPolicy


async def settle(rounds: int = 25) -> None:
    """Let the session task drain whatever is currently queued."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def ts(minute: int) -> datetime:
    return datetime(2024, 5, 1, 10, minute, tzinfo=timezone.utc)


def make_message(
    *,
    message_id: str = "m1",
    room_id: str = "r1",
    minute: int = 0,
    content: str | None = "hello",
    sender_id: str = "u2",
) -> Message:
    return Message(
        id=message_id,
        content=content,
        sender_id=sender_id,
        room_id=room_id,
        created_at=ts(minute),
    )


def make_summary(conversation_id: str = "r1", *, name: str = "Room", unread: int = 0) -> ConversationSummary:
    return ConversationSummary(id=conversation_id, name=name, unread_count=unread)


def message_payload(
    message_id: str = "m1",
    room_id: str = "r1",
    minute: int = 0,
    content: str | None = "hello",
    sender_id: str = "u2",
) -> dict[str, Any]:
    return {
        "id": message_id,
        "content": content,
        "senderId": sender_id,
        "roomId": room_id,
        "createdAt": ts(minute).isoformat().replace("+00:00", "Z"),
        "fileUrl": [],
        "isRead": False,
    }


def conversation_payload(conversation_id: str = "r1", name: str = "Room", unread: int = 0, **extra: Any) -> dict[str, Any]:
    return {
        "id": conversation_id,
        "name": name,
        "photo": None,
        "isActive": True,
        "unreadCount": unread,
        "lastMessage": None,
        "createdAt": ts(0).isoformat(),
        **extra,
    }


@dataclass
class FakeConnection:
    inbox: asyncio.Queue = field(default_factory=asyncio.Queue)
    sent: list[dict[str, Any]] = field(default_factory=list)
    closed_with: int | None = None

    async def send_text(self, data: str) -> None:
        if self.closed_with is not None:
            raise TransportClosed(self.closed_with)
        self.sent.append(json.loads(data))

    async def receive_text(self) -> str | bytes:
        item = await self.inbox.get()
        if isinstance(item, TransportClosed):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed_with is None:
            self.closed_with = code
            self.inbox.put_nowait(TransportClosed(code, reason))

    def push(self, frame: dict[str, Any] | str | bytes) -> None:
        self.inbox.put_nowait(frame if isinstance(frame, (str, bytes)) else json.dumps(frame))

    def drop(self, code: int = 1006) -> None:
        """Simulate the server or the network ending the connection."""
        self.closed_with = code
        self.inbox.put_nowait(TransportClosed(code))


@dataclass
class FakeConnector:
    failures: int = 0
    yield_on_open: bool = False
    connections: list[FakeConnection] = field(default_factory=list)
    opened_with: list[tuple[str, str]] = field(default_factory=list)

    async def open(self, url: str, token: str) -> FakeConnection:
        self.opened_with.append((url, token))
        if self.yield_on_open:
            await asyncio.sleep(0)
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionFailedError("connection refused")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


@dataclass
class FakeClock:
    delays: list[float] = field(default_factory=list)
    gate: asyncio.Event | None = None

    def now(self) -> datetime:
        return ts(0)

    async def sleep(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)


@dataclass
class Recorder:
    """Collects everything the client reports through its hooks."""

    states: list[ConnectionState] = field(default_factory=list)
    errors: list[ChatSyncError] = field(default_factory=list)
    conversations: list[list[ConversationSummary]] = field(default_factory=list)
    messages: list[list[Message]] = field(default_factory=list)

    def hooks(self) -> ClientHooks:
        return ClientHooks(
            on_state_change=self.states.append,
            on_error=self.errors.append,
            on_conversations=self.conversations.append,
            on_messages=self.messages.append,
        )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, WS_URL="ws://chat.test/ws")


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(token="token-1", user_id="u1")


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> ReconnectPolicy:
    return ReconnectPolicy(base_delay=1.0, max_delay=30.0, max_attempts=5, jitter=0.2, rng=lambda: 0.5)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest_asyncio.fixture
async def client(identity, connector, clock, policy, recorder, test_settings):
    chat = ChatClient(
        identity,
        connector=connector,
        settings=test_settings,
        policy=policy,
        clock=clock,
        hooks=recorder.hooks(),
    )
    yield chat
    await chat.disconnect()
