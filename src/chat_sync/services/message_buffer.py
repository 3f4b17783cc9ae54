from __future__ import annotations

import bisect
import logging
from typing import Callable, Iterable

from chat_sync.domain.entities.message import Message

logger = logging.getLogger(__name__)

MessagesListener = Callable[[list[Message]], None]


def _created_at(message: Message):
    return message.created_at


class MessageBuffer:
    """Chronological, duplicate-free message list for the active room.

    The listener receives the full list after every mutation.
    """

    def __init__(self, listener: MessagesListener | None = None) -> None:
        self._room_id: str | None = None
        self._messages: list[Message] = []
        self._ids: set[str] = set()
        self._listener = listener

    @property
    def room_id(self) -> str | None:
        return self._room_id

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def set_listener(self, listener: MessagesListener | None) -> None:
        self._listener = listener

    def reset(self, room_id: str | None) -> None:
        self._room_id = room_id
        self._messages = []
        self._ids = set()
        self._notify()

    def replace(self, room_id: str, messages: Iterable[Message]) -> bool:
        if room_id != self._room_id:
            logger.debug("Discarding history for stale room %s (active=%s)", room_id, self._room_id)
            return False
        ordered: list[Message] = []
        seen: set[str] = set()
        for message in sorted(messages, key=_created_at):
            if message.id in seen:
                continue
            seen.add(message.id)
            ordered.append(message)
        self._messages = ordered
        self._ids = seen
        self._notify()
        return True

    def append(self, message: Message) -> bool:
        """Insert a message of the active room unless its id is already present."""
        if message.room_id != self._room_id:
            return False
        if message.id in self._ids:
            logger.debug("Duplicate message %s ignored", message.id)
            return False
        bisect.insort(self._messages, message, key=_created_at)
        self._ids.add(message.id)
        self._notify()
        return True

    def _notify(self) -> None:
        if self._listener is None:
            return
        try:
            self._listener(self.messages)
        except Exception:
            logger.exception("Messages listener failed")
