# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/actions/flow.py
from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Iterable, Optional, Union

from aquabot_ai_app.apps.chat.sdk.actions.endpoints import HttpMutationEndpoints, MutationEndpoints, dispatch
from aquabot_ai_app.apps.chat.sdk.actions.models import (
    ActionProposal, ActionType, MutationResult, ProposalState, normalize_action_payload,
)
from aquabot_ai_app.apps.chat.sdk.comm.bus import ACTION_PROPOSED, ACTION_RESOLVED, TANK_DATA_CHANGED
from aquabot_ai_app.apps.chat.sdk.segments.models import ActionConfirmationSegment
from aquabot_ai_app.apps.chat.sdk.streaming.conversation import Conversation
from aquabot_ai_app.apps.chat.sdk.util import utc_today
from aquabot_ai_app.infra.service_hub.errors import (
    ActionRejectedError, ProposalPendingError, ProposalStateError,
)

logger = logging.getLogger(__name__)


def success_narration(description: str) -> str:
    return f"Done: {description}"


def failure_narration(description: str, error: str) -> str:
    return f"Couldn't complete \"{description}\": {error}"


def cancel_narration(description: str) -> str:
    return f"Cancelled: {description}. No changes were made."


class ActionConfirmationFlow:
    """
    proposed -> confirmed | cancelled, one proposal at a time per conversation.
    Nothing is dispatched until confirm() is called.
    """

    def __init__(self, conversation: Conversation, endpoints: MutationEndpoints, *,
                 tank_id: Optional[str] = None, today: Callable[[], date] = utc_today):
        self.conversation = conversation
        self.endpoints = endpoints
        self.tank_id = tank_id if tank_id is not None else conversation.tank_id
        self._today = today
        self.pending: Optional[ActionProposal] = None

    @classmethod
    def from_settings(cls, conversation: Conversation, settings, *,
                      headers: Optional[dict] = None) -> "ActionConfirmationFlow":
        return cls(conversation, HttpMutationEndpoints.from_settings(settings, headers=headers))

    def propose(self, proposal: Union[ActionProposal, ActionConfirmationSegment]) -> ActionProposal:
        if isinstance(proposal, ActionConfirmationSegment):
            proposal = ActionProposal(type=ActionType(proposal.type), description=proposal.description,
                                      payload=dict(proposal.payload_data))
        if not self.tank_id:
            raise ActionRejectedError("Select a tank before running actions",
                                      stage="propose", context={"action": proposal.type.value})
        if self.pending is not None and self.pending.is_pending:
            raise ProposalPendingError("Another action is waiting for confirmation",
                                       stage="propose", context={"pending": self.pending.type.value})
        proposal.tank_id = self.tank_id
        proposal.state = ProposalState.proposed
        self.pending = proposal
        self.conversation.bus.publish(ACTION_PROPOSED, action=proposal.type.value,
                                      description=proposal.description)
        return proposal

    def propose_from_segments(self, segments: Iterable[object]) -> Optional[ActionProposal]:
        """First action-confirmation segment of a reply becomes the pending proposal."""
        for seg in segments:
            if isinstance(seg, ActionConfirmationSegment):
                return self.propose(seg)
        return None

    def _take(self) -> ActionProposal:
        p = self.pending
        if p is None or p.state != ProposalState.proposed:
            raise ProposalStateError("No action awaiting confirmation", stage="confirm")
        return p

    async def confirm(self) -> MutationResult:
        proposal = self._take()
        proposal.state = ProposalState.executing
        payload = normalize_action_payload(proposal.type, proposal.payload, today=self._today())
        try:
            result = await dispatch(self.endpoints, proposal.type, proposal.tank_id, payload)
        except Exception as e:
            logger.error("Action %s failed for tank=%s: %s", proposal.type.value, proposal.tank_id, e)
            result = MutationResult(success=False, message=str(e) or e.__class__.__name__,
                                    code=getattr(e, "code", None))
        except BaseException:
            # cancelled mid-dispatch: the proposal can be confirmed or cancelled again
            proposal.state = ProposalState.proposed
            raise

        proposal.state = ProposalState.confirmed
        self.pending = None
        if result.success:
            self.conversation.append_narration(success_narration(proposal.description))
            self.conversation.bus.publish(TANK_DATA_CHANGED, tank_id=proposal.tank_id,
                                          action=proposal.type.value)
        else:
            self.conversation.append_narration(failure_narration(proposal.description, result.message))
        self.conversation.bus.publish(ACTION_RESOLVED, action=proposal.type.value,
                                      outcome="success" if result.success else "failure")
        return result

    def cancel(self) -> ActionProposal:
        proposal = self._take()
        proposal.state = ProposalState.cancelled
        self.pending = None
        self.conversation.append_narration(cancel_narration(proposal.description))
        self.conversation.bus.publish(ACTION_RESOLVED, action=proposal.type.value, outcome="cancelled")
        return proposal
