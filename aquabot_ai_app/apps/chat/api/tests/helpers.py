# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from types import SimpleNamespace
from typing import List, Optional

import anthropic
import httpx


def rate_limit_error() -> anthropic.RateLimitError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.RateLimitError("rate limited", response=httpx.Response(429, request=request), body=None)


class _Stream:
    def __init__(self, chunks: List[str], error: Optional[BaseException]):
        self._chunks = chunks
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, *exc):
        return False

    @property
    def text_stream(self):
        async def _gen():
            for c in self._chunks:
                yield c
        return _gen()

    async def get_final_message(self):
        return SimpleNamespace(id="msg_stream", usage=SimpleNamespace(input_tokens=10, output_tokens=5))


class FakeMessages:
    def __init__(self, text: str, error: Optional[BaseException]):
        self.text = text
        self.error = error
        self.calls = []

    def stream(self, **kw):
        self.calls.append(kw)
        # three deltas, the way a real stream splits text
        third = max(1, len(self.text) // 3)
        chunks = [self.text[:third], self.text[third:2 * third], self.text[2 * third:]]
        return _Stream([c for c in chunks if c], self.error)

    async def create(self, **kw):
        self.calls.append(kw)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            id="msg_once",
            content=[SimpleNamespace(type="text", text=self.text)],
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
        )


class FakeAnthropic:
    def __init__(self, text: str = "Hello from AquaBot", error: Optional[BaseException] = None):
        self.messages = FakeMessages(text, error)
