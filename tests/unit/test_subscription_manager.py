from __future__ import annotations

import asyncio

import pytest

from chat_sync.application.dto.identity import SessionIdentity
from chat_sync.application.exceptions import NoRoomSelectedError, NotConnectedError, ValidationError
from chat_sync.domain.value_objects.enums import ConnectionState
from chat_sync.services.message_buffer import MessageBuffer
from chat_sync.services.reconnect_policy import ReconnectPolicy
from chat_sync.services.subscription_manager import SubscriptionManager
from chat_sync.services.transport_session import TransportSession
from tests.conftest import FakeClock, make_message, settle


@pytest.fixture
def buffer() -> MessageBuffer:
    return MessageBuffer()


@pytest.fixture
def session(connector, clock) -> TransportSession:
    return TransportSession(
        "ws://chat.test/ws",
        connector,
        identity=SessionIdentity(token="t", user_id="u1"),
        policy=ReconnectPolicy(jitter=0.0),
        clock=clock,
    )


@pytest.fixture
def manager(session, buffer) -> SubscriptionManager:
    return SubscriptionManager(session, buffer)


@pytest.mark.asyncio
async def test_select_room_while_connected_sends_subscribe(session, manager, connector):
    await session.connect()

    await manager.select_room("r1")

    assert connector.latest.sent == [{"type": "subscribe", "roomId": "r1"}]
    assert manager.pending is False
    await session.disconnect()


@pytest.mark.asyncio
async def test_select_room_clears_buffer_before_network(session, manager, buffer):
    buffer.reset("r0")
    buffer.append(make_message(room_id="r0"))

    await manager.select_room("r1")

    assert buffer.room_id == "r1"
    assert buffer.messages == []


@pytest.mark.asyncio
async def test_select_room_while_disconnected_is_replayed_on_connect(session, manager, connector):
    await manager.select_room("r1")
    assert manager.pending is True

    await session.connect()

    assert connector.latest.sent == [{"type": "subscribe", "roomId": "r1"}]
    assert manager.pending is False
    await session.disconnect()


@pytest.mark.asyncio
async def test_only_latest_pending_room_is_sent(session, manager, connector):
    await manager.select_room("r1")
    await manager.select_room("r2")

    await session.connect()

    assert connector.latest.sent == [{"type": "subscribe", "roomId": "r2"}]
    await session.disconnect()


@pytest.mark.asyncio
async def test_subscription_replayed_after_reconnect(session, manager, connector):
    await session.connect()
    await manager.select_room("r1")

    connector.latest.drop()
    await settle()

    first, second = connector.connections
    assert first.sent == [{"type": "subscribe", "roomId": "r1"}]
    assert second.sent == [{"type": "subscribe", "roomId": "r1"}]
    await session.disconnect()


@pytest.mark.asyncio
async def test_select_room_during_reconnect_window(connector):
    clock = FakeClock(gate=asyncio.Event())
    session = TransportSession(
        "ws://chat.test/ws",
        connector,
        identity=SessionIdentity(token="t", user_id="u1"),
        policy=ReconnectPolicy(jitter=0.0),
        clock=clock,
    )
    manager = SubscriptionManager(session, MessageBuffer())
    await session.connect()
    connector.latest.drop()
    await settle()
    assert session.state is ConnectionState.RECONNECTING

    await manager.select_room("r1")
    assert connector.connections[0].sent == []
    clock.gate.set()
    await settle()

    assert session.state is ConnectionState.CONNECTED
    assert connector.latest.sent == [{"type": "subscribe", "roomId": "r1"}]
    await session.disconnect()


@pytest.mark.asyncio
async def test_send_message_without_room(session, manager, connector):
    await session.connect()

    with pytest.raises(NoRoomSelectedError):
        await manager.send_message("hi")

    assert connector.latest.sent == []
    await session.disconnect()


@pytest.mark.asyncio
async def test_send_message_while_disconnected(manager):
    await manager.select_room("r1")

    with pytest.raises(NotConnectedError):
        await manager.send_message("hi")


@pytest.mark.asyncio
async def test_send_empty_message_rejected(session, manager, connector):
    await session.connect()
    await manager.select_room("r1")

    with pytest.raises(ValidationError):
        await manager.send_message("", [])

    assert connector.latest.sent == [{"type": "subscribe", "roomId": "r1"}]
    await session.disconnect()


@pytest.mark.asyncio
async def test_send_attachment_only_message(session, manager, connector):
    await session.connect()
    await manager.select_room("r1")

    await manager.send_message(None, ["https://cdn/a.png"])

    assert connector.latest.sent[-1] == {
        "type": "send-message",
        "content": None,
        "fileUrl": ["https://cdn/a.png"],
        "roomId": "r1",
    }
    await session.disconnect()


@pytest.mark.asyncio
async def test_select_empty_room_id_rejected(manager):
    with pytest.raises(ValidationError):
        await manager.select_room("")


@pytest.mark.asyncio
async def test_clear_drops_room_and_buffer(manager, buffer):
    await manager.select_room("r1")

    manager.clear()

    assert manager.room_id is None
    assert manager.pending is False
    assert buffer.room_id is None


@pytest.mark.asyncio
async def test_failing_messages_listener_does_not_split_room_state(session, connector):
    calls = []

    def render(messages):
        calls.append(messages)
        if len(calls) == 2:
            raise RuntimeError("render failed")

    buffer = MessageBuffer(render)
    manager = SubscriptionManager(session, buffer)
    await session.connect()

    await manager.select_room("r1")
    await manager.select_room("r2")

    assert manager.room_id == "r2"
    assert buffer.room_id == "r2"
    assert not manager.pending
    assert connector.latest.sent[-1] == {"type": "subscribe", "roomId": "r2"}
    await session.disconnect()
