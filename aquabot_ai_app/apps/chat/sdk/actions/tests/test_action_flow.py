# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import asyncio
from datetime import date

import pytest

from aquabot_ai_app.apps.chat.sdk.actions.endpoints import HttpMutationEndpoints
from aquabot_ai_app.apps.chat.sdk.actions.flow import ActionConfirmationFlow
from aquabot_ai_app.apps.chat.sdk.actions.models import (
    ActionProposal, ActionType, MutationResult, ProposalState,
)
from aquabot_ai_app.apps.chat.sdk.actions.tests.helpers import RecordingEndpoints
from aquabot_ai_app.apps.chat.sdk.comm.bus import ACTION_RESOLVED, TANK_DATA_CHANGED
from aquabot_ai_app.apps.chat.sdk.config import Settings
from aquabot_ai_app.apps.chat.sdk.segments.parser import parse
from aquabot_ai_app.apps.chat.sdk.streaming.conversation import Conversation
from aquabot_ai_app.infra.service_hub.errors import (
    ActionRejectedError, MutationError, ProposalPendingError, ProposalStateError,
)

REPLY = """I can log that for you.

```action-confirmation
{"type": "log_parameters", "description": "Log pH 7.2 and ammonia 0 ppm", "payload": {"ph": 7.2, "ammonia": 0}}
```"""


def _flow(endpoints, tank_id="tank-1"):
    conv = Conversation(tank_id=tank_id)
    return conv, ActionConfirmationFlow(conv, endpoints, today=lambda: date(2025, 1, 10))


@pytest.mark.asyncio
async def test_confirm_dispatches_once_and_narrates_success():
    endpoints = RecordingEndpoints()
    conv, flow = _flow(endpoints)
    sub = conv.bus.subscribe(TANK_DATA_CHANGED, ACTION_RESOLVED)

    proposal = flow.propose_from_segments(parse(REPLY))
    assert proposal.state == ProposalState.proposed
    assert endpoints.calls == []

    result = await flow.confirm()
    assert result.success
    assert endpoints.calls == [("log_parameters", "tank-1", {"ph": 7.2, "ammonia": 0})]
    assert proposal.state == ProposalState.confirmed
    assert conv.messages[-1].role == "system"
    assert "Log pH 7.2 and ammonia 0 ppm" in conv.messages[-1].content
    events = sub.drain()
    assert [e.type for e in events] == [TANK_DATA_CHANGED, ACTION_RESOLVED]
    assert events[0].data["tank_id"] == "tank-1"


@pytest.mark.asyncio
async def test_cancel_never_dispatches():
    endpoints = RecordingEndpoints()
    conv, flow = _flow(endpoints)
    flow.propose(ActionProposal(type=ActionType.add_livestock, description="Add 6 Neon Tetras"))
    flow.cancel()
    assert endpoints.calls == []
    assert conv.messages[-1].content.startswith("Cancelled: Add 6 Neon Tetras")
    with pytest.raises(ProposalStateError):
        await flow.confirm()


@pytest.mark.asyncio
async def test_failure_narration_carries_upstream_message():
    endpoints = RecordingEndpoints(result=MutationResult(success=False, message="Tank is archived"))
    conv, flow = _flow(endpoints)
    sub = conv.bus.subscribe(TANK_DATA_CHANGED)
    flow.propose(ActionProposal(type=ActionType.log_parameters, description="Log pH", payload={"ph": 7}))
    result = await flow.confirm()
    assert not result.success
    assert "Tank is archived" in conv.messages[-1].content
    assert sub.drain() == []


@pytest.mark.asyncio
async def test_endpoint_exception_becomes_failure():
    endpoints = RecordingEndpoints(error=MutationError("Action endpoint unreachable"))
    conv, flow = _flow(endpoints)
    flow.propose(ActionProposal(type=ActionType.complete_maintenance, description="Done",
                                payload={"task_id": "t1"}))
    result = await flow.confirm()
    assert not result.success
    assert "Action endpoint unreachable" in conv.messages[-1].content
    assert flow.pending is None


def test_no_tank_is_rejected():
    _, flow = _flow(RecordingEndpoints(), tank_id=None)
    with pytest.raises(ActionRejectedError):
        flow.propose(ActionProposal(type=ActionType.log_parameters, description="Log pH"))
    assert flow.pending is None


def test_second_proposal_while_pending_is_rejected():
    _, flow = _flow(RecordingEndpoints())
    flow.propose(ActionProposal(type=ActionType.log_parameters, description="one"))
    with pytest.raises(ProposalPendingError):
        flow.propose(ActionProposal(type=ActionType.add_livestock, description="two"))
    assert flow.pending.description == "one"


@pytest.mark.asyncio
async def test_schedule_payload_is_normalized_before_dispatch():
    endpoints = RecordingEndpoints()
    _, flow = _flow(endpoints)
    flow.propose(ActionProposal(type=ActionType.schedule_maintenance, description="Water change",
                                payload={"task_type": "Water Change", "due_date": "tomorrow",
                                         "title": "25% change"}))
    await flow.confirm()
    (_, _, payload), = endpoints.calls
    assert payload["task_type"] == "water_change"
    assert payload["due_date"] == "2025-01-11"
    assert payload["frequency"] == "once"


@pytest.mark.asyncio
async def test_cancelled_confirm_leaves_proposal_open():
    endpoints = RecordingEndpoints(hold=asyncio.Event())
    conv, flow = _flow(endpoints)
    proposal = flow.propose(ActionProposal(type=ActionType.log_parameters, description="Log pH", payload={"ph": 7}))

    task = asyncio.create_task(flow.confirm())
    while not endpoints.calls:
        await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert proposal.state == ProposalState.proposed
    flow.cancel()
    assert proposal.state == ProposalState.cancelled
    assert flow.propose(ActionProposal(type=ActionType.add_livestock, description="Add 2 Otos")).is_pending


def test_flow_from_settings_posts_to_actions_url():
    settings = Settings(ACTIONS_ENDPOINT_URL="http://app.local/api/ai/actions/execute", ACTIONS_TIMEOUT_SECONDS=7.0)
    flow = ActionConfirmationFlow.from_settings(Conversation(tank_id="tank-1"), settings)
    assert isinstance(flow.endpoints, HttpMutationEndpoints)
    assert flow.endpoints.url == "http://app.local/api/ai/actions/execute"
    assert flow.endpoints._timeout.total == 7.0
    assert flow.tank_id == "tank-1"
