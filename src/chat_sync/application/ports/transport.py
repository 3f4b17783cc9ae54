from __future__ import annotations

from typing import Protocol


class TransportClosed(Exception):
    """Raised by a connection once the peer or the network has closed it."""

    def __init__(self, code: int | None, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"connection closed (code={code}, reason={reason!r})")


class Connection(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str | bytes: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class Connector(Protocol):
    """Opens a connection; raises ConnectionFailedError when it cannot."""

    async def open(self, url: str, token: str) -> Connection: ...
