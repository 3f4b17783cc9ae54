"""Entrypoint: python -m chat_sync [--room ROOM]"""
from __future__ import annotations

import argparse
import asyncio
import logging

from chat_sync.application.dto.identity import SessionIdentity
from chat_sync.application.exceptions import ChatSyncError
from chat_sync.client import ChatClient, ClientHooks
from chat_sync.config import settings
from chat_sync.domain.entities.conversation import ConversationSummary
from chat_sync.domain.entities.message import Message
from chat_sync.infrastructure.observability.session_context import configure_logging

logger = logging.getLogger("chat_sync.cli")


def _log_conversations(conversations: list[ConversationSummary]) -> None:
    for conv in conversations:
        logger.info("  %-24s %-20s unread=%d", conv.id, conv.name, conv.unread_count)


def _log_messages(messages: list[Message]) -> None:
    if messages:
        last = messages[-1]
        logger.info("[%s] %s: %s", last.created_at.isoformat(), last.sender_id, last.content or "")
    logger.info("%d message(s) in room", len(messages))


def _log_error(exc: ChatSyncError) -> None:
    logger.warning("%s: %s", type(exc).__name__, exc.detail)


async def run(room_id: str | None) -> None:
    identity = SessionIdentity(token=settings.AUTH_TOKEN, user_id=settings.USER_ID)
    hooks = ClientHooks(
        on_state_change=lambda state: logger.info("state: %s", state),
        on_error=_log_error,
        on_conversations=_log_conversations,
        on_messages=_log_messages,
    )
    async with ChatClient(identity, hooks=hooks) as client:
        if room_id:
            await client.select_room(room_id)
        await asyncio.Event().wait()


def main() -> None:
    parser = argparse.ArgumentParser(prog="chat-sync", description="Tail a chat server session.")
    parser.add_argument("--room", help="room id to subscribe to")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(run(args.room))
    except KeyboardInterrupt:
        pass
    except ChatSyncError as exc:
        logger.error("%s: %s", type(exc).__name__, exc.detail)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
