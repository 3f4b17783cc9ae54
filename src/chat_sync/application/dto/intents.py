"""Outbound intents, encoded by the protocol codec."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Subscribe:
    room_id: str


@dataclass(frozen=True, slots=True)
class SendMessage:
    content: str | None
    attachment_urls: tuple[str, ...]
    room_id: str


@dataclass(frozen=True, slots=True)
class MarkRead:
    pass


Intent = Subscribe | SendMessage | MarkRead
