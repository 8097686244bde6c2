# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# infra/llm/streaming.py
import uuid
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import anthropic

from aquabot_ai_app.infra.llm.llm_data_model import (ModelRequest, StreamEvent, TokenUsage,
                                                     ContentBlock, text_of)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def create_client(api_key: Optional[str]) -> anthropic.AsyncAnthropic:
    return anthropic.AsyncAnthropic(api_key=api_key)


def _anthropic_messages(request: ModelRequest) -> List[Dict[str, Any]]:
    convo: List[Dict[str, Any]] = [{"role": m.role, "content": m.content} for m in request.messages]
    if request.image is not None:
        # the image rides on the last user turn
        image_block = request.image.to_anthropic_block()
        if convo and convo[-1]["role"] == "user":
            last = convo[-1]
            last["content"] = [image_block, {"type": "text", "text": last["content"]}]
        else:
            convo.append({"role": "user", "content": [image_block]})
    return convo


async def stream_anthropic_events(
        client: anthropic.AsyncAnthropic,
        request: ModelRequest,
        *,
        model_name: str = DEFAULT_MODEL,
        max_tokens: int = 2048,
) -> AsyncIterator[StreamEvent]:
    """
    Translate an Anthropic message stream into text_delta / done / error records.
    Errors after the first delta are reported as an error record, not raised,
    so the consumer keeps the partial text. Errors before any delta propagate.
    """
    started = False
    try:
        async with client.messages.stream(
                model=model_name,
                system=request.system,
                messages=_anthropic_messages(request),
                max_tokens=request.max_tokens or max_tokens,
        ) as stream:
            async for text in stream.text_stream:
                if text:
                    started = True
                    yield StreamEvent.delta(text)

            final_obj = await stream.get_final_message()
            usage = TokenUsage.from_any(getattr(final_obj, "usage", None))
            msg_id = getattr(final_obj, "id", None) or f"msg-{uuid.uuid4().hex}"
            yield StreamEvent.done(msg_id, usage)
    except anthropic.APIError as e:
        if not started:
            raise
        logger.error("Anthropic stream interrupted after partial output: %s", e)
        yield StreamEvent.error("Stream interrupted")


async def complete_once(
        client: anthropic.AsyncAnthropic,
        request: ModelRequest,
        *,
        model_name: str = DEFAULT_MODEL,
        max_tokens: int = 2048,
) -> Tuple[str, Optional[str], Optional[TokenUsage]]:
    """Non-streaming call. Returns (text, message id, usage)."""
    resp = await client.messages.create(
        model=model_name,
        system=request.system,
        messages=_anthropic_messages(request),
        max_tokens=request.max_tokens or max_tokens,
    )
    blocks = [ContentBlock.from_anthropic_block(b) for b in (resp.content or [])]
    return text_of(blocks), getattr(resp, "id", None), TokenUsage.from_any(getattr(resp, "usage", None))
