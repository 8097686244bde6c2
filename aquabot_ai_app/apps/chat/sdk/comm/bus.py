# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/comm/bus.py
"""
Conversation-scoped publish/subscribe.

Components that used to shout over a global event bus ("message sent", "tank data changed")
publish here instead. Each conversation owns one bus; subscribers get their own bounded
queue and only see events of that conversation.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from aquabot_ai_app.apps.chat.sdk.util import now_ms

logger = logging.getLogger(__name__)

MESSAGE_SENT = "chat.message_sent"
USAGE_CHANGED = "chat.usage_changed"
TANK_DATA_CHANGED = "tank.data_changed"
ACTION_PROPOSED = "action.proposed"
ACTION_RESOLVED = "action.resolved"


@dataclass(frozen=True)
class BusEvent:
    type: str
    conversation_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    ts: int = field(default_factory=now_ms)


class Subscription:
    def __init__(self, bus: "ConversationEventBus", queue: "asyncio.Queue[Optional[BusEvent]]",
                 types: Optional[frozenset]):
        self._bus = bus
        self.queue = queue
        self.types = types
        self.closed = False

    def wants(self, event: BusEvent) -> bool:
        return self.types is None or event.type in self.types

    def get_nowait(self) -> Optional[BusEvent]:
        try:
            return self.queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> List[BusEvent]:
        out = []
        while True:
            ev = self.get_nowait()
            if ev is None:
                return out
            out.append(ev)

    def __aiter__(self) -> AsyncIterator[BusEvent]:
        return self._iter()

    async def _iter(self):
        while not self.closed:
            ev = await self.queue.get()
            if ev is None:
                return
            yield ev

    def close(self):
        self._bus.unsubscribe(self)


class ConversationEventBus:
    def __init__(self, conversation_id: str, *, max_queue: int = 100):
        self.conversation_id = conversation_id
        self.max_queue = max_queue
        self._subs: List[Subscription] = []
        self._callbacks: List[Callable[[BusEvent], None]] = []

    def subscribe(self, *types: str) -> Subscription:
        sub = Subscription(self, asyncio.Queue(maxsize=self.max_queue), frozenset(types) if types else None)
        self._subs.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription):
        if sub in self._subs:
            self._subs.remove(sub)
        sub.closed = True
        self._enqueue(sub, None)

    def on(self, callback: Callable[[BusEvent], None]) -> Callable[[], None]:
        """Synchronous listener. Returns an unregister function."""
        self._callbacks.append(callback)
        return lambda: self._callbacks.remove(callback) if callback in self._callbacks else None

    def publish(self, type: str, **data: Any) -> BusEvent:
        event = BusEvent(type=type, conversation_id=self.conversation_id, data=data)
        for sub in list(self._subs):
            if sub.wants(event):
                self._enqueue(sub, event)
        for cb in list(self._callbacks):
            try:
                cb(event)
            except Exception:
                logger.exception("[ConversationEventBus] listener failed for %s", type)
        return event

    @staticmethod
    def _enqueue(sub: Subscription, item: Optional[BusEvent]):
        # bounded queue; drop oldest on overflow
        q = sub.queue
        try:
            q.put_nowait(item)
        except asyncio.QueueFull:
            try:
                q.get_nowait()
            except asyncio.QueueEmpty:
                pass
            q.put_nowait(item)
