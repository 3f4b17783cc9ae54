"""JSON framing for the chat socket: intents out, typed events in."""
from __future__ import annotations

import json
import logging

from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.dto.intents import Intent
from chat_sync.application.exceptions import MalformedFrameError
from chat_sync.domain.value_objects.enums import InboundType
from chat_sync.infrastructure.ws.mappers import InboundEvent, frame_to_event, intent_to_frame
from chat_sync.infrastructure.ws.protocol import inbound_adapter

logger = logging.getLogger(__name__)

_KNOWN_TYPES = frozenset(t.value for t in InboundType)


def encode_intent(intent: Intent) -> str:
    return intent_to_frame(intent).model_dump_json(by_alias=True)


def decode_frame(raw: str | bytes) -> InboundEvent | None:
    """Parse one inbound frame.

    Returns None for frame types this client does not understand.
    Raises MalformedFrameError when the frame is not valid JSON or does
    not match the schema of its declared type.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise MalformedFrameError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise MalformedFrameError("frame is not a typed JSON object")

    frame_type = data["type"]
    if frame_type not in _KNOWN_TYPES:
        logger.info("Ignoring unknown frame type: %s", frame_type)
        return None

    try:
        frame = inbound_adapter.validate_python(data)
    except PydanticValidationError as exc:
        raise MalformedFrameError(
            f"invalid {frame_type} frame: {exc.error_count()} error(s)"
        ) from exc
    return frame_to_event(frame)
