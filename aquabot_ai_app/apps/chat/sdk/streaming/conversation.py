# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/streaming/conversation.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Literal, Optional

from aquabot_ai_app.apps.chat.sdk.comm.bus import ConversationEventBus
from aquabot_ai_app.apps.chat.sdk.util import now_ms
from aquabot_ai_app.infra.llm.llm_data_model import Message

Role = Literal["user", "assistant", "system"]


@dataclass
class ChatMessage:
    role: Role
    content: str
    id: str = field(default_factory=lambda: f"temp-{uuid.uuid4().hex[:12]}")
    created_at: int = field(default_factory=now_ms)
    # shown locally but not yet acknowledged by the model round-trip
    optimistic: bool = False
    # assistant placeholder still receiving deltas
    streaming: bool = False
    # stream ended without a terminating record; content is partial
    interrupted: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at,
            "optimistic": self.optimistic,
            "streaming": self.streaming,
            "interrupted": self.interrupted,
        }


class Conversation:
    """
    Local message list of one chat session plus its event bus.
    Only the assembler and the action flow write to it.
    """

    def __init__(self, conversation_id: Optional[str] = None, *, tank_id: Optional[str] = None,
                 messages: Optional[Iterable[ChatMessage]] = None,
                 bus: Optional[ConversationEventBus] = None):
        self.id = conversation_id or uuid.uuid4().hex
        self.tank_id = tank_id
        self.messages: List[ChatMessage] = list(messages or [])
        self.bus = bus or ConversationEventBus(self.id)

    def append(self, role: Role, content: str, **kw) -> ChatMessage:
        msg = ChatMessage(role=role, content=content, **kw)
        self.messages.append(msg)
        return msg

    def append_optimistic_user(self, text: str) -> ChatMessage:
        return self.append("user", text, optimistic=True)

    def append_placeholder(self) -> ChatMessage:
        return self.append("assistant", "", streaming=True)

    def append_narration(self, text: str) -> ChatMessage:
        """System-authored line shown in the thread (action outcomes)."""
        return self.append("system", text, id=f"sys-{uuid.uuid4().hex[:12]}")

    def retract(self, *messages: Optional[ChatMessage]):
        """Remove the given messages together."""
        ids = {m.id for m in messages if m is not None}
        self.messages = [m for m in self.messages if m.id not in ids]

    def get(self, message_id: str) -> Optional[ChatMessage]:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    def history(self, limit: Optional[int] = None, *, exclude: Iterable[ChatMessage] = ()) -> List[Message]:
        """
        Model-facing history: user/assistant turns with content, oldest first.
        Narrations, empty placeholders and excluded messages are left out.
        """
        skip = {m.id for m in exclude}
        turns = [Message(role=m.role, content=m.content) for m in self.messages
                 if m.role in ("user", "assistant") and m.content and m.id not in skip]
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return turns
