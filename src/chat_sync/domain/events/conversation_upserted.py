from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.conversation import ConversationSummary


@dataclass(frozen=True, slots=True)
class ConversationUpserted:
    summary: ConversationSummary
    unread_delta: int = 0
    # Names of summary fields carried by the frame; None means all of them.
    fields: frozenset[str] | None = None
