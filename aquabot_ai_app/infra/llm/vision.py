# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# infra/llm/vision.py
import logging
from typing import Optional, Protocol, Tuple

import anthropic

from aquabot_ai_app.infra.llm.llm_data_model import ModelRequest, TokenUsage
from aquabot_ai_app.infra.llm.streaming import complete_once, DEFAULT_MODEL
from aquabot_ai_app.infra.service_hub.errors import TransportError

logger = logging.getLogger(__name__)


class VisionModel(Protocol):
    async def complete(self, request: ModelRequest) -> Tuple[str, Optional[TokenUsage]]:
        """Single-shot call. Raises TransportError when the model could not be reached."""
        ...


class AnthropicVisionClient:
    def __init__(self, client: anthropic.AsyncAnthropic, *, model_name: str = DEFAULT_MODEL,
                 max_tokens: int = 2048):
        self.client = client
        self.model_name = model_name
        self.max_tokens = max_tokens

    async def complete(self, request: ModelRequest) -> Tuple[str, Optional[TokenUsage]]:
        try:
            text, _, usage = await complete_once(self.client, request.model_copy(update={"stream": False}),
                                                 model_name=self.model_name, max_tokens=self.max_tokens)
        except anthropic.APIStatusError as e:
            reason = TransportError.RATE_LIMIT if e.status_code == 429 else TransportError.FAILURE
            raise TransportError(str(e), reason=reason, http_status=e.status_code, stage="request") from e
        except anthropic.APIError as e:
            raise TransportError(str(e), stage="request") from e
        return text, usage
