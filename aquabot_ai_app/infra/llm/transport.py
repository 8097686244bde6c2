# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# infra/llm/transport.py
"""
Model transport: how the response assembler reaches the model.

A transport turns a ModelRequest into a TransportResponse: a status code, a content type
(which decides between one-shot JSON and a line-delimited event stream), and lazy
accessors for the body. Two implementations:
  - AiohttpModelTransport: POST to the chat gateway over HTTP.
  - AnthropicModelTransport: in-process, drives the Anthropic SDK directly.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional, Protocol

import aiohttp
import anthropic

from aquabot_ai_app.infra.llm.llm_data_model import ModelRequest
from aquabot_ai_app.infra.llm.streaming import stream_anthropic_events, complete_once, DEFAULT_MODEL

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"
NDJSON = "application/x-ndjson"
STREAMING_CONTENT_TYPES = (EVENT_STREAM, NDJSON)


def is_streaming_content_type(content_type: Optional[str]) -> bool:
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    return ctype in STREAMING_CONTENT_TYPES


class TransportResponse(Protocol):
    status: int
    content_type: str

    def iter_lines(self) -> AsyncIterator[str]: ...

    async def read_json(self) -> Any: ...

    async def read_text(self) -> str: ...

    async def close(self) -> None: ...


class ModelTransport(Protocol):
    async def open(self, request: ModelRequest) -> TransportResponse: ...


class AiohttpTransportResponse:
    def __init__(self, session: aiohttp.ClientSession, resp: aiohttp.ClientResponse, own_session: bool):
        self._session = session
        self._resp = resp
        self._own_session = own_session
        self.status = resp.status
        self.content_type = (resp.headers.get("Content-Type") or "").lower()

    async def iter_lines(self) -> AsyncIterator[str]:
        async for raw in self._resp.content:
            yield raw.decode("utf-8", errors="replace")

    async def read_json(self) -> Any:
        return await self._resp.json(content_type=None)

    async def read_text(self) -> str:
        return await self._resp.text()

    async def close(self) -> None:
        self._resp.release()
        if self._own_session:
            await self._session.close()


class AiohttpModelTransport:
    """POSTs {system, messages, stream} to the chat gateway."""

    def __init__(self, url: str, *, session: Optional[aiohttp.ClientSession] = None,
                 headers: Optional[Dict[str, str]] = None, connect_timeout_s: float = 30.0):
        self.url = url
        self._session = session
        self._headers = headers or {}
        # no overall or per-read deadline: a reply may stream for a long time
        self._timeout = aiohttp.ClientTimeout(total=None, connect=connect_timeout_s,
                                              sock_connect=connect_timeout_s)

    @classmethod
    def from_settings(cls, settings, *, headers: Optional[Dict[str, str]] = None) -> "AiohttpModelTransport":
        return cls(settings.MODEL_GATEWAY_URL, headers=headers,
                   connect_timeout_s=settings.MODEL_CONNECT_TIMEOUT_SECONDS)

    async def open(self, request: ModelRequest) -> AiohttpTransportResponse:
        own = self._session is None
        session = self._session or aiohttp.ClientSession(timeout=self._timeout)
        headers = {"Accept": f"{EVENT_STREAM}, application/json", **self._headers}
        try:
            resp = await session.post(self.url, json=request.to_wire(), headers=headers, timeout=self._timeout)
        except BaseException:
            if own:
                await session.close()
            raise
        return AiohttpTransportResponse(session, resp, own)


class _EventIteratorResponse:
    """Wraps an async iterator of StreamEvent into the line-delimited transport shape."""

    def __init__(self, events, status: int = 200):
        self.status = status
        self.content_type = NDJSON
        self._events = events

    async def iter_lines(self) -> AsyncIterator[str]:
        async for ev in self._events:
            yield json.dumps(ev.to_dict()) + "\n"

    async def read_json(self) -> Any:
        raise TypeError("streaming response has no JSON body")

    async def read_text(self) -> str:
        return ""

    async def close(self) -> None:
        aclose = getattr(self._events, "aclose", None)
        if aclose is not None:
            await aclose()


class _JsonResponse:
    def __init__(self, body: Dict[str, Any], status: int = 200):
        self.status = status
        self.content_type = "application/json"
        self._body = body

    async def iter_lines(self) -> AsyncIterator[str]:
        yield json.dumps(self._body)

    async def read_json(self) -> Any:
        return self._body

    async def read_text(self) -> str:
        return json.dumps(self._body)

    async def close(self) -> None:
        return None


class AnthropicModelTransport:
    """In-process transport on the Anthropic SDK (no gateway hop)."""

    def __init__(self, client: anthropic.AsyncAnthropic, *, model_name: str = DEFAULT_MODEL,
                 max_tokens: int = 2048):
        self.client = client
        self.model_name = model_name
        self.max_tokens = max_tokens

    async def open(self, request: ModelRequest):
        if request.stream:
            events = stream_anthropic_events(self.client, request,
                                             model_name=self.model_name, max_tokens=self.max_tokens)
            return _EventIteratorResponse(events)
        text, msg_id, usage = await complete_once(self.client, request,
                                                  model_name=self.model_name, max_tokens=self.max_tokens)
        body: Dict[str, Any] = {"text": text, "id": msg_id}
        if usage:
            body["usage"] = usage.to_dict()
        return _JsonResponse(body)
