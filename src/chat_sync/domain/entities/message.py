from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    content: str | None
    sender_id: str
    room_id: str
    created_at: datetime
    attachment_urls: tuple[str, ...] = ()
    is_read: bool = False
