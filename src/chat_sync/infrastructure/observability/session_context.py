from __future__ import annotations

import logging
from contextvars import ContextVar

session_id_ctx: ContextVar[str] = ContextVar("session_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(session_id)s]: %(message)s"


class SessionIdFilter(logging.Filter):
    """Stamps the current chat session id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_ctx.get()
        return True


def configure_logging(level: str | int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
