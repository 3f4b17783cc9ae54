from __future__ import annotations

from enum import IntEnum, StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class InboundType(StrEnum):
    CONVERSATION_LIST = "conversation-list"
    PAST_MESSAGES = "past-messages"
    NEW_MESSAGE = "new-message"
    NEW_CONVERSATION = "new-conversation"
    ERROR = "error"


class CloseCode(IntEnum):
    NORMAL = 1000
    GOING_AWAY = 1001
    ABNORMAL = 1006
