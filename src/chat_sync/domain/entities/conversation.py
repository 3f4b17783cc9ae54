from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime


@dataclass(frozen=True, slots=True)
class LastMessagePreview:
    content: str | None
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    id: str
    name: str = ""
    photo: str | None = None
    is_active: bool = False
    unread_count: int = 0
    last_message: LastMessagePreview | None = None
    created_at: datetime | None = None


# Fields an upsert may overwrite; id is the key and unread_count is additive.
MERGEABLE_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(ConversationSummary)
) - {"id", "unread_count"}
