# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/streaming/session.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from aquabot_ai_app.infra.llm.llm_data_model import StreamEvent, StreamEventType, TokenUsage
from aquabot_ai_app.infra.service_hub.errors import StreamInterruptedError

logger = logging.getLogger(__name__)


class StreamStatus(str, Enum):
    active = "active"
    done = "done"
    errored = "errored"


@dataclass
class StreamSession:
    """
    Accumulation state of one streamed reply.
    active -> done | errored. Terminal states absorb every later event.
    """
    session_id: str = field(default_factory=lambda: f"stream-{uuid.uuid4().hex[:12]}")
    accumulated_text: str = ""
    status: StreamStatus = StreamStatus.active
    final_id: Optional[str] = None
    usage: Optional[TokenUsage] = None
    error: Optional[StreamInterruptedError] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != StreamStatus.active

    def apply(self, event: StreamEvent) -> bool:
        """Returns True when the accumulated text changed."""
        if self.is_terminal:
            logger.debug("[%s] ignoring %s after %s", self.session_id, event.type.value, self.status.value)
            return False
        if event.type == StreamEventType.text_delta:
            if not event.text:
                return False
            self.accumulated_text += event.text
            return True
        if event.type == StreamEventType.done:
            self.final_id = event.id
            self.usage = event.usage
            self.status = StreamStatus.done
            return False
        self.interrupt(event.message or "Stream interrupted")
        return False

    def interrupt(self, message: str = "Stream interrupted"):
        if self.is_terminal:
            return
        self.status = StreamStatus.errored
        self.error = StreamInterruptedError(message, partial_text=self.accumulated_text,
                                            context={"session_id": self.session_id})
