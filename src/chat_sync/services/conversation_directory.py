from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Iterable

from chat_sync.domain.entities.conversation import (
    MERGEABLE_FIELDS,
    ConversationSummary,
    LastMessagePreview,
)
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.conversation_upserted import ConversationUpserted

logger = logging.getLogger(__name__)

ConversationsListener = Callable[[list[ConversationSummary]], None]


class ConversationDirectory:
    """Conversation summaries ordered most-recently-active first.

    Ids are unique and unread counts never drop below zero.
    """

    def __init__(self, listener: ConversationsListener | None = None) -> None:
        self._items: list[ConversationSummary] = []
        self._listener = listener

    @property
    def conversations(self) -> list[ConversationSummary]:
        return list(self._items)

    def set_listener(self, listener: ConversationsListener | None) -> None:
        self._listener = listener

    def get(self, conversation_id: str) -> ConversationSummary | None:
        for item in self._items:
            if item.id == conversation_id:
                return item
        return None

    def replace_all(self, summaries: Iterable[ConversationSummary]) -> None:
        by_id: dict[str, ConversationSummary] = {}
        for summary in summaries:
            by_id[summary.id] = dataclasses.replace(
                summary, unread_count=max(summary.unread_count, 0),
            )
        self._items = list(by_id.values())
        logger.debug("Directory resynced with %d conversation(s)", len(self._items))
        self._notify()

    def apply_upsert(self, event: ConversationUpserted) -> ConversationSummary:
        summary = event.summary
        index = self._index_of(summary.id)
        if index is None:
            merged = dataclasses.replace(summary, unread_count=max(event.unread_delta, 0))
            self._items.insert(0, merged)
        else:
            existing = self._items.pop(index)
            names = MERGEABLE_FIELDS if event.fields is None else event.fields & MERGEABLE_FIELDS
            changes = {name: getattr(summary, name) for name in names}
            merged = dataclasses.replace(
                existing,
                **changes,
                unread_count=max(existing.unread_count + event.unread_delta, 0),
            )
            self._items.insert(0, merged)
        self._notify()
        return merged

    def note_message(self, message: Message, *, own_user_id: str | None = None) -> bool:
        """Treat a message for a non-active room as an unread cue for that room.

        Returns False when the room is not in the directory.
        """
        if self._index_of(message.room_id) is None:
            logger.debug("Message %s for unknown room %s dropped", message.id, message.room_id)
            return False
        delta = 0 if own_user_id is not None and message.sender_id == own_user_id else 1
        preview = LastMessagePreview(content=message.content, created_at=message.created_at)
        self.apply_upsert(ConversationUpserted(
            summary=ConversationSummary(id=message.room_id, last_message=preview),
            unread_delta=delta,
            fields=frozenset({"last_message"}),
        ))
        return True

    def mark_read(self, conversation_id: str) -> None:
        index = self._index_of(conversation_id)
        if index is None or self._items[index].unread_count == 0:
            return
        self._items[index] = dataclasses.replace(self._items[index], unread_count=0)
        self._notify()

    def clear(self) -> None:
        if not self._items:
            return
        self._items = []
        self._notify()

    def _index_of(self, conversation_id: str) -> int | None:
        for i, item in enumerate(self._items):
            if item.id == conversation_id:
                return i
        return None

    def _notify(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener(self.conversations)
        except Exception:
            logger.exception("Conversations listener failed")
