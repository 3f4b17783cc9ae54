from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.conversation import ConversationSummary


@dataclass(frozen=True, slots=True)
class ConversationList:
    """Full directory resync pushed by the server after connect."""

    summaries: tuple[ConversationSummary, ...]
