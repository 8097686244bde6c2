# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/streaming/events.py
import json
import logging
from typing import Optional

from aquabot_ai_app.infra.llm.llm_data_model import StreamEvent, StreamEventType, TokenUsage

logger = logging.getLogger(__name__)


def decode_event_line(line: str) -> Optional[StreamEvent]:
    """
    One line of a text/event-stream or JSONL body -> StreamEvent, or None to skip.
    Accepts `data: {...}` framing. SSE comments, `event:`/`id:` fields, blank lines
    and anything that is not a well-formed record are skipped.
    """
    s = (line or "").strip()
    if not s or s.startswith(":"):
        return None
    if s.startswith("data:"):
        s = s[5:].strip()
    elif s.startswith(("event:", "id:", "retry:")):
        return None
    if not s or s == "[DONE]":
        return None
    try:
        obj = json.loads(s)
    except (ValueError, RecursionError):
        logger.debug("Skipping undecodable stream line: %.120s", s)
        return None
    if not isinstance(obj, dict):
        return None

    kind = obj.get("type")
    if kind == StreamEventType.text_delta.value:
        text = obj.get("text")
        if not isinstance(text, str):
            return None
        return StreamEvent.delta(text)
    if kind == StreamEventType.done.value:
        msg_id = obj.get("id")
        return StreamEvent.done(str(msg_id) if msg_id is not None else None,
                                TokenUsage.from_any(obj.get("usage")))
    if kind == StreamEventType.error.value:
        message = obj.get("message")
        return StreamEvent.error(message if isinstance(message, str) and message else "Stream interrupted")
    return None
