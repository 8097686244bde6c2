# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from aquabot_ai_app.apps.chat.sdk.actions.models import MutationResult


class RecordingEndpoints:
    """Records every dispatched call; answers with `result` or raises `error`.
    With `hold` set, each call waits on that event before answering."""

    def __init__(self, result: Optional[MutationResult] = None, error: Optional[BaseException] = None,
                 hold: Optional[asyncio.Event] = None):
        self.result = result or MutationResult(success=True, message="ok")
        self.error = error
        self.hold = hold
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    async def _record(self, name, tank_id, payload):
        self.calls.append((name, tank_id, payload))
        if self.hold is not None:
            await self.hold.wait()
        if self.error is not None:
            raise self.error
        return self.result

    async def log_parameters(self, tank_id, payload):
        return await self._record("log_parameters", tank_id, payload)

    async def add_livestock(self, tank_id, payload):
        return await self._record("add_livestock", tank_id, payload)

    async def schedule_maintenance(self, tank_id, payload):
        return await self._record("schedule_maintenance", tank_id, payload)

    async def complete_maintenance(self, tank_id, payload):
        return await self._record("complete_maintenance", tank_id, payload)
