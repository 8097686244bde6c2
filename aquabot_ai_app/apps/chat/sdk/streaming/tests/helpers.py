# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import json
from typing import Any, List, Optional

from aquabot_ai_app.infra.llm.transport import EVENT_STREAM


def sse(obj: Any) -> str:
    return f"data: {json.dumps(obj)}"


class FakeResponse:
    """
    Scripted transport response. `lines` may contain an Exception instance:
    reading reaches it and raises, the way a dropped connection would.
    """

    def __init__(self, *, status: int = 200, content_type: str = EVENT_STREAM,
                 lines: Optional[List[Any]] = None, body: Any = None):
        self.status = status
        self.content_type = content_type
        self.lines = list(lines or [])
        self.body = body
        self.closed = False
        self.read = 0

    async def iter_lines(self):
        for line in self.lines:
            if isinstance(line, BaseException):
                raise line
            self.read += 1
            yield line

    async def read_json(self):
        if isinstance(self.body, BaseException):
            raise self.body
        return self.body

    async def read_text(self):
        return json.dumps(self.body)

    async def close(self):
        self.closed = True


class FakeTransport:
    def __init__(self, response: Optional[FakeResponse] = None, *, error: Optional[BaseException] = None):
        self.response = response
        self.error = error
        self.requests = []

    async def open(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response
