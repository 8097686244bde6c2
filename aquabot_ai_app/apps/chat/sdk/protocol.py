# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/protocol.py
from __future__ import annotations
from typing import Any, Dict, Optional, Literal, List
from pydantic import BaseModel, Field


# -----------------------------
# History / client-side request
# -----------------------------

class ChatHistoryMessage(BaseModel):
    role: Literal["user", "assistant"] = "user"
    content: str
    timestamp: Optional[str] = None


class ChatRequest(BaseModel):
    """
    message: the new user text
    tank_id: selected tank, or None for general chat
    chat_history: prior turns (oldest first); trimmed server-side to the history limit
    """
    message: str = Field(..., min_length=1, max_length=10_000)
    tank_id: Optional[str] = None
    chat_history: List[ChatHistoryMessage] = Field(default_factory=list)


class _ProtoBase(BaseModel):
    def dump_model(self) -> Dict[str, Any]:
        return self.model_dump()


class ChatReply(_ProtoBase):
    """One-shot (non-streaming) chat response."""
    id: Optional[str] = None
    text: str
    segments: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Optional[Dict[str, int]] = None


class ErrorBody(_ProtoBase):
    code: str
    message: str
    retryable: bool = False

