from __future__ import annotations


class ChatSyncError(Exception):
    """Base client error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthenticationMissingError(ChatSyncError):
    pass


class ConnectionFailedError(ChatSyncError):
    pass


class ConnectionLostError(ChatSyncError):
    def __init__(self, detail: str = "", code: int | None = None) -> None:
        self.code = code
        super().__init__(detail)


class PersistentFailureError(ChatSyncError):
    def __init__(self, detail: str = "", attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(detail)


class NoRoomSelectedError(ChatSyncError):
    pass


class NotConnectedError(ChatSyncError):
    pass


class ServerReportedError(ChatSyncError):
    pass


class MalformedFrameError(ChatSyncError):
    pass


class ValidationError(ChatSyncError):
    pass
