from __future__ import annotations

import re

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


def derive_ws_url(api_base_url: str) -> str:
    """http://host:5000/api/v1 -> ws://host:5000/ws"""
    url = re.sub(r"^http", "ws", api_base_url.rstrip("/"))
    if url.endswith("/api/v1"):
        return url[: -len("/api/v1")] + "/ws"
    return url + "/ws"


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000/api/v1"
    WS_URL: str | None = None
    WS_TOKEN_PARAM: str = "token"
    WS_OPEN_TIMEOUT: float = 10.0
    WS_PING_INTERVAL: float | None = 20.0

    RECONNECT_BASE_DELAY: float = Field(default=1.0, gt=0)
    RECONNECT_MAX_DELAY: float = Field(default=30.0, gt=0)
    RECONNECT_MAX_ATTEMPTS: int = Field(default=8, ge=0)
    RECONNECT_JITTER: float = Field(default=0.2, ge=0, le=1)

    INTENTIONAL_CLOSE_CODES: list[int] = [1000]

    LOG_LEVEL: str = "INFO"

    AUTH_TOKEN: str = ""
    USER_ID: str = ""

    @property
    def websocket_url(self) -> str:
        return self.WS_URL or derive_ws_url(self.API_BASE_URL)

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
