# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import asyncio

import pytest

from aquabot_ai_app.apps.chat.sdk.comm.bus import (
    ConversationEventBus, MESSAGE_SENT, TANK_DATA_CHANGED,
)


@pytest.mark.asyncio
async def test_subscribers_only_get_wanted_types():
    bus = ConversationEventBus("conv-1")
    everything = bus.subscribe()
    tank_only = bus.subscribe(TANK_DATA_CHANGED)

    bus.publish(MESSAGE_SENT, message_id="m1")
    bus.publish(TANK_DATA_CHANGED, tank_id="t1")

    assert [e.type for e in everything.drain()] == [MESSAGE_SENT, TANK_DATA_CHANGED]
    (ev,) = tank_only.drain()
    assert ev.conversation_id == "conv-1"
    assert ev.data == {"tank_id": "t1"}


@pytest.mark.asyncio
async def test_bounded_queue_drops_oldest():
    bus = ConversationEventBus("conv-1", max_queue=2)
    sub = bus.subscribe()
    for i in range(3):
        bus.publish(MESSAGE_SENT, n=i)
    assert [e.data["n"] for e in sub.drain()] == [1, 2]


@pytest.mark.asyncio
async def test_async_iteration_ends_on_close():
    bus = ConversationEventBus("conv-1")
    sub = bus.subscribe()

    async def _consume():
        return [e.type async for e in sub]

    task = asyncio.create_task(_consume())
    bus.publish(MESSAGE_SENT)
    await asyncio.sleep(0)
    sub.close()
    assert await asyncio.wait_for(task, timeout=1) == [MESSAGE_SENT]


def test_callbacks_and_unregister():
    bus = ConversationEventBus("conv-1")
    seen = []

    def _boom(_ev):
        raise RuntimeError("listener bug")

    bus.on(_boom)
    off = bus.on(lambda ev: seen.append(ev.type))
    bus.publish(MESSAGE_SENT)
    off()
    bus.publish(MESSAGE_SENT)
    assert seen == [MESSAGE_SENT]
