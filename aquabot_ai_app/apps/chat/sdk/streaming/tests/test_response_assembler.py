# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import pytest

from aquabot_ai_app.apps.chat.sdk.comm.bus import MESSAGE_SENT, USAGE_CHANGED
from aquabot_ai_app.apps.chat.sdk.config import Settings
from aquabot_ai_app.apps.chat.sdk.context.tests.helpers import make_snapshot
from aquabot_ai_app.apps.chat.sdk.streaming.assembler import (
    AssembledReply, ResponseAssembler, StreamHandle,
)
from aquabot_ai_app.apps.chat.sdk.streaming.conversation import Conversation
from aquabot_ai_app.apps.chat.sdk.streaming.session import StreamStatus
from aquabot_ai_app.apps.chat.sdk.streaming.tests.helpers import FakeResponse, FakeTransport, sse
from aquabot_ai_app.infra.llm.llm_data_model import Message
from aquabot_ai_app.infra.llm.transport import AiohttpModelTransport
from aquabot_ai_app.infra.service_hub.errors import StreamInterruptedError, TransportError


def _delta(t):
    return sse({"type": "text_delta", "text": t})


@pytest.mark.asyncio
async def test_stream_reconstructs_text_and_final_id():
    resp = FakeResponse(lines=[_delta("Hel"), _delta("lo, "), _delta("world"),
                               sse({"type": "done", "id": "abc",
                                    "usage": {"input_tokens": 5, "output_tokens": 3}})])
    conv = Conversation(tank_id="tank-1")
    sub = conv.bus.subscribe()
    handle = await ResponseAssembler(FakeTransport(resp), conv).send([], "hi", make_snapshot())
    assert isinstance(handle, StreamHandle)

    seen = [u.text async for u in handle]
    assert seen == ["Hel", "Hello, ", "Hello, world"]
    reply = handle.reply()
    assert reply.text == "Hello, world"
    assert reply.id == "abc"
    assert handle.status == StreamStatus.done
    assert resp.closed

    user, assistant = conv.messages
    assert not user.optimistic
    assert assistant.id == "abc" and assistant.content == "Hello, world" and not assistant.streaming
    types = [e.type for e in sub.drain()]
    assert types == [MESSAGE_SENT, USAGE_CHANGED]


@pytest.mark.asyncio
async def test_malformed_lines_are_skipped():
    resp = FakeResponse(lines=[": keepalive", "", "event: message", "data: {not json", _delta("ok"),
                               sse({"type": "mystery"}), sse({"type": "done", "id": 7})])
    handle = await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    reply = await handle.wait()
    assert reply.text == "ok"
    assert reply.id == "7"


@pytest.mark.asyncio
async def test_stream_without_done_is_interrupted_and_keeps_partial():
    resp = FakeResponse(lines=[_delta("Partial ")])
    conv = Conversation()
    handle = await ResponseAssembler(FakeTransport(resp), conv).send([], "hi", None)
    session = await handle.drain()

    assert session.status == StreamStatus.errored
    assert session.accumulated_text == "Partial "
    assert isinstance(session.error, StreamInterruptedError)
    with pytest.raises(StreamInterruptedError) as ei:
        handle.reply()
    assert ei.value.partial_text == "Partial "
    assert conv.messages[-1].interrupted
    assert conv.messages[-1].content == "Partial "


@pytest.mark.asyncio
async def test_error_record_and_read_failure_mid_stream():
    resp = FakeResponse(lines=[_delta("Partial "), sse({"type": "error", "message": "overloaded"})])
    handle = await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    session = await handle.drain()
    assert session.status == StreamStatus.errored
    assert session.error.message == "overloaded"

    resp = FakeResponse(lines=[_delta("Partial "), ConnectionResetError("reset")])
    handle = await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    session = await handle.drain()
    assert session.status == StreamStatus.errored
    assert session.accumulated_text == "Partial "


@pytest.mark.asyncio
async def test_events_after_done_are_ignored():
    resp = FakeResponse(lines=[_delta("A"), sse({"type": "done", "id": "x"}), _delta("B")])
    handle = await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    assert (await handle.wait()).text == "A"


@pytest.mark.asyncio
async def test_handshake_failure_retracts_both_messages():
    conv = Conversation(messages=[])
    assembler = ResponseAssembler(FakeTransport(error=OSError("connection refused")), conv)
    with pytest.raises(TransportError) as ei:
        await assembler.send([], "hi", None)
    assert ei.value.reason == TransportError.FAILURE
    assert conv.messages == []


@pytest.mark.asyncio
async def test_read_failure_before_first_line_retracts():
    conv = Conversation()
    resp = FakeResponse(lines=[ConnectionResetError("gone")])
    handle = await ResponseAssembler(FakeTransport(resp), conv).send([], "hi", None)
    with pytest.raises(TransportError):
        await handle.drain()
    assert conv.messages == []
    assert resp.closed


@pytest.mark.asyncio
@pytest.mark.parametrize("status,body", [
    (429, {"error": {"code": "rate_limit_error"}}),
    (403, {"code": "DAILY_LIMIT_REACHED"}),
])
async def test_rate_limit_is_distinguished(status, body):
    conv = Conversation()
    resp = FakeResponse(status=status, content_type="application/json", body=body)
    with pytest.raises(TransportError) as ei:
        await ResponseAssembler(FakeTransport(resp), conv).send([], "hi", None)
    assert ei.value.is_rate_limited
    assert conv.messages == []
    assert resp.closed


@pytest.mark.asyncio
async def test_server_error_is_failure():
    resp = FakeResponse(status=500, content_type="application/json", body={"detail": "boom"})
    with pytest.raises(TransportError) as ei:
        await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    assert ei.value.reason == TransportError.FAILURE
    assert ei.value.http_status == 500


@pytest.mark.asyncio
async def test_one_shot_json_reply():
    resp = FakeResponse(content_type="application/json",
                        body={"content": "Hi there", "id": "m1", "usage": {"input_tokens": 1, "output_tokens": 2}})
    conv = Conversation()
    result = await ResponseAssembler(FakeTransport(resp), conv).send([], "hello", None)
    assert isinstance(result, AssembledReply)
    assert result.text == "Hi there"
    assert result.id == "m1"
    assert result.usage.total_tokens == 3
    assert conv.messages[-1].id == "m1"


@pytest.mark.asyncio
async def test_aclose_stops_pulling_and_keeps_partial():
    resp = FakeResponse(lines=[_delta("one "), _delta("two "), _delta("three")])
    handle = await ResponseAssembler(FakeTransport(resp)).send([], "hi", None)
    it = handle.__aiter__()
    first = await it.__anext__()
    assert first.text == "one "
    await it.aclose()
    await handle.aclose()
    assert handle.closed
    assert resp.closed
    assert handle.text == "one "
    assert [u async for u in handle] == []


@pytest.mark.asyncio
async def test_request_carries_prompt_and_capped_history():
    resp = FakeResponse(content_type="application/json", body={"text": "ok"})
    transport = FakeTransport(resp)
    prior = [Message(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(60)]
    await ResponseAssembler(transport, history_limit=50).send(prior, "latest", make_snapshot())
    req = transport.requests[0]
    assert len(req.messages) == 51
    assert req.messages[0].content == "m10"
    assert req.messages[-1].content == "latest"
    assert "## Tank: Living Room" in req.system


def test_assembler_from_settings_targets_gateway():
    settings = Settings(MODEL_GATEWAY_URL="http://gateway.local/api/ai/chat?stream=true",
                        CHAT_HISTORY_LIMIT=8, MAX_OUTPUT_TOKENS=1024)
    conv = Conversation(tank_id="tank-1")
    assembler = ResponseAssembler.from_settings(settings, conv)
    assert isinstance(assembler.transport, AiohttpModelTransport)
    assert assembler.transport.url == "http://gateway.local/api/ai/chat?stream=true"
    assert assembler.conversation is conv
    assert assembler.history_limit == 8
    assert assembler.max_tokens == 1024
