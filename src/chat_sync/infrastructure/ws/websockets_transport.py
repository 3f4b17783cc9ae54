"""Connector / Connection implementation backed by the `websockets` library."""
from __future__ import annotations

import asyncio
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from chat_sync.application.exceptions import ConnectionFailedError
from chat_sync.application.ports.transport import TransportClosed
from chat_sync.domain.value_objects.enums import CloseCode

logger = logging.getLogger(__name__)


def with_token(url: str, token: str, param: str = "token") -> str:
    """Attach the credential as a query parameter, replacing any previous one."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
    query.append((param, token))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _closed(exc: ConnectionClosed) -> TransportClosed:
    if exc.rcvd is not None:
        return TransportClosed(exc.rcvd.code, exc.rcvd.reason)
    return TransportClosed(CloseCode.ABNORMAL, "")


class WebsocketsConnection:
    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send_text(self, data: str) -> None:
        try:
            await self._ws.send(data)
        except ConnectionClosed as exc:
            raise _closed(exc) from exc

    async def receive_text(self) -> str | bytes:
        try:
            message = await self._ws.recv()
        except ConnectionClosed as exc:
            raise _closed(exc) from exc
        return message

    async def close(self, code: int = CloseCode.NORMAL, reason: str = "") -> None:
        await self._ws.close(code=code, reason=reason)


class WebsocketsConnector:
    def __init__(
        self,
        *,
        token_param: str = "token",
        open_timeout: float | None = 10.0,
        ping_interval: float | None = 20.0,
    ) -> None:
        self._token_param = token_param
        self._open_timeout = open_timeout
        self._ping_interval = ping_interval

    async def open(self, url: str, token: str) -> WebsocketsConnection:
        logger.info("Connecting to %s", url)
        try:
            ws = await connect(
                with_token(url, token, self._token_param),
                open_timeout=self._open_timeout,
                ping_interval=self._ping_interval,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise ConnectionFailedError(f"{type(exc).__name__}: {exc}") from exc
        return WebsocketsConnection(ws)
