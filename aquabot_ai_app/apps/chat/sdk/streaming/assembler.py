# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/streaming/assembler.py
"""
Response assembler: sends one user turn to the model and rebuilds the reply.

    assembler = ResponseAssembler(transport, conversation)
    result = await assembler.send(None, "Why is my ammonia rising?", snapshot)
    if isinstance(result, StreamHandle):
        async for update in result:      # pull-based; stop pulling to cancel
            render(update.text)
        reply = result.reply()           # or raises StreamInterruptedError
    else:
        render(result.text)

The transport's content type decides the mode, not the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, AsyncIterator, List, Optional, Sequence, Union

from aquabot_ai_app.apps.chat.sdk.comm.bus import MESSAGE_SENT, USAGE_CHANGED
from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot, SkillLevel, UserPreferences
from aquabot_ai_app.apps.chat.sdk.prompts.composer import compose
from aquabot_ai_app.apps.chat.sdk.segments.models import Segment
from aquabot_ai_app.apps.chat.sdk.segments.parser import parse, parse_live
from aquabot_ai_app.apps.chat.sdk.streaming.conversation import ChatMessage, Conversation
from aquabot_ai_app.apps.chat.sdk.streaming.events import decode_event_line
from aquabot_ai_app.apps.chat.sdk.streaming.session import StreamSession, StreamStatus
from aquabot_ai_app.infra.llm.llm_data_model import Message, ModelRequest, TokenUsage
from aquabot_ai_app.infra.llm.transport import (
    AiohttpModelTransport, ModelTransport, TransportResponse, is_streaming_content_type,
)
from aquabot_ai_app.infra.service_hub.errors import TransportError, StreamInterruptedError

logger = logging.getLogger(__name__)

# Body codes the app uses to signal quota exhaustion
RATE_LIMIT_CODES = {"DAILY_LIMIT_REACHED", "RATE_LIMIT_EXCEEDED", "rate_limit", "rate_limit_error"}


@dataclass
class AssembledReply:
    id: Optional[str]
    text: str
    usage: Optional[TokenUsage] = None
    message: Optional[ChatMessage] = None

    @property
    def segments(self) -> List[Segment]:
        return parse(self.text)


@dataclass
class StreamUpdate:
    """Running value published after each delta."""
    text: str
    status: StreamStatus

    @property
    def segments(self) -> List[Segment]:
        return parse_live(self.text)


def _exc_status(exc: BaseException) -> Optional[int]:
    for attr in ("status", "status_code"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    return None


def _body_code(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        code = body.get("code")
        if code is None and isinstance(body.get("error"), dict):
            code = body["error"].get("code") or body["error"].get("type")
        if code is None and isinstance(body.get("detail"), dict):
            code = body["detail"].get("code")
        return str(code) if code is not None else None
    return None


def classify_failure(message: str, *, http_status: Optional[int] = None, body_code: Optional[str] = None,
                     cause: Optional[BaseException] = None) -> TransportError:
    rate_limited = http_status == 429 or (body_code in RATE_LIMIT_CODES if body_code else False)
    err = TransportError(
        message,
        reason=TransportError.RATE_LIMIT if rate_limited else TransportError.FAILURE,
        http_status=http_status,
        context={"code": body_code} if body_code else None,
    )
    if cause is not None:
        err.__cause__ = cause
    return err


class StreamHandle:
    """
    Pull-based view of one streamed reply.

    Iterating drives the transport read; each text_delta yields a StreamUpdate.
    Iteration ends when the session reaches a terminal state. `aclose()` stops pulling and
    releases the transport; whatever text arrived so far stays on `session.accumulated_text`.
    """

    def __init__(self, response: TransportResponse, session: StreamSession, conversation: Conversation,
                 user_message: ChatMessage, placeholder: ChatMessage):
        self.session = session
        self._response = response
        self._conversation = conversation
        self._user_message = user_message
        self._placeholder = placeholder
        self._lines: Optional[AsyncIterator[str]] = None
        self._closed = False
        self._seen_line = False

    @property
    def text(self) -> str:
        return self.session.accumulated_text

    @property
    def status(self) -> StreamStatus:
        return self.session.status

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[StreamUpdate]:
        return self._pump()

    async def _pump(self) -> AsyncIterator[StreamUpdate]:
        if self._closed:
            return
        if self._lines is None:
            self._lines = self._response.iter_lines().__aiter__()
        try:
            while not self.session.is_terminal:
                try:
                    line = await self._lines.__anext__()
                except StopAsyncIteration:
                    self.session.interrupt("Stream ended without completion")
                    break
                self._seen_line = True
                event = decode_event_line(line)
                if event is None:
                    continue
                if self.session.apply(event):
                    self._placeholder.content = self.session.accumulated_text
                    yield StreamUpdate(self.session.accumulated_text, self.session.status)
        except (TransportError, StreamInterruptedError):
            raise
        except Exception as e:
            if not self._seen_line:
                # nothing of the body arrived: the exchange failed as a whole
                self._fail_atomically()
                await self.aclose()
                raise classify_failure(f"Model request failed: {e}", http_status=_exc_status(e), cause=e) from e
            logger.warning("[%s] stream read failed after %d chars: %s",
                           self.session.session_id, len(self.session.accumulated_text), e)
            self.session.interrupt(str(e) or "Stream interrupted")
        if self.session.is_terminal and not self._closed:
            await self._finish()

    async def drain(self) -> StreamSession:
        async for _ in self:
            pass
        return self.session

    def reply(self) -> AssembledReply:
        """Result of a finished stream. Raises the interruption when the stream errored."""
        if self.session.status == StreamStatus.errored and self.session.error is not None:
            raise self.session.error
        if self.session.status != StreamStatus.done:
            raise StreamInterruptedError("Stream still active", partial_text=self.session.accumulated_text)
        return AssembledReply(id=self.session.final_id, text=self.session.accumulated_text,
                              usage=self.session.usage, message=self._placeholder)

    async def wait(self) -> AssembledReply:
        await self.drain()
        return self.reply()

    async def aclose(self):
        """Stop pulling. No further updates are produced."""
        if self._closed:
            return
        self._closed = True
        self._placeholder.streaming = False
        await self._response.close()

    def _fail_atomically(self):
        self._conversation.retract(self._user_message, self._placeholder)

    async def _finish(self):
        self._closed = True
        await self._response.close()
        self._placeholder.streaming = False
        if self.session.status == StreamStatus.done:
            self._user_message.optimistic = False
            if self.session.final_id:
                self._placeholder.id = self.session.final_id
            self._placeholder.content = self.session.accumulated_text
            self._conversation.bus.publish(MESSAGE_SENT, message_id=self._placeholder.id)
            if self.session.usage:
                self._conversation.bus.publish(USAGE_CHANGED, **self.session.usage.to_dict())
            return
        # errored
        if not self.session.accumulated_text:
            self._fail_atomically()
        else:
            self._user_message.optimistic = False
            self._placeholder.interrupted = True


class ResponseAssembler:
    def __init__(self, transport: ModelTransport, conversation: Optional[Conversation] = None, *,
                 history_limit: int = 50, max_tokens: Optional[int] = None):
        self.transport = transport
        self.conversation = conversation or Conversation()
        self.history_limit = history_limit
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings, conversation: Optional[Conversation] = None, *,
                      headers: Optional[dict] = None) -> "ResponseAssembler":
        """Assembler talking to the chat gateway at settings.MODEL_GATEWAY_URL."""
        return cls(AiohttpModelTransport.from_settings(settings, headers=headers), conversation,
                   history_limit=settings.CHAT_HISTORY_LIMIT, max_tokens=settings.MAX_OUTPUT_TOKENS)

    def build_request(self, prior_messages: Sequence[Message], new_user_text: str,
                      snapshot: Optional[ContextSnapshot], *,
                      skill_level: Union[SkillLevel, str, None] = None,
                      preferences: Optional[UserPreferences] = None,
                      today: Optional[date] = None) -> ModelRequest:
        if skill_level is None and snapshot is not None:
            skill_level = snapshot.profile.skill_level
        history = list(prior_messages)[-self.history_limit:] if self.history_limit > 0 else []
        return ModelRequest(
            system=compose(snapshot, skill_level, today=today, preferences=preferences),
            messages=history + [Message(role="user", content=new_user_text)],
            max_tokens=self.max_tokens,
        )

    async def send(self, prior_messages: Optional[Sequence[Message]], new_user_text: str,
                   snapshot: Optional[ContextSnapshot], *,
                   skill_level: Union[SkillLevel, str, None] = None,
                   preferences: Optional[UserPreferences] = None) -> Union[AssembledReply, StreamHandle]:
        conv = self.conversation
        if prior_messages is None:
            prior_messages = conv.history()
        user_msg = conv.append_optimistic_user(new_user_text)
        placeholder = conv.append_placeholder()
        request = self.build_request(prior_messages, new_user_text, snapshot,
                                     skill_level=skill_level, preferences=preferences)

        try:
            response = await self.transport.open(request)
        except Exception as e:
            conv.retract(user_msg, placeholder)
            logger.error("Model transport failed before response: %s", e)
            raise classify_failure(f"Model request failed: {e}", http_status=_exc_status(e), cause=e) from e

        if response.status >= 400:
            body: Any = None
            try:
                body = await response.read_json()
            except Exception:
                body = None
            finally:
                await response.close()
            conv.retract(user_msg, placeholder)
            code = _body_code(body)
            logger.error("Model gateway returned HTTP %s (code=%s)", response.status, code)
            raise classify_failure(f"HTTP {response.status}", http_status=response.status, body_code=code)

        if is_streaming_content_type(response.content_type):
            return StreamHandle(response, StreamSession(), conv, user_msg, placeholder)

        try:
            body = await response.read_json()
        except Exception as e:
            conv.retract(user_msg, placeholder)
            raise classify_failure(f"Unreadable model response: {e}", cause=e) from e
        finally:
            await response.close()

        text = None
        if isinstance(body, dict):
            text = body.get("text") if isinstance(body.get("text"), str) else body.get("content")
        if not isinstance(text, str):
            conv.retract(user_msg, placeholder)
            raise classify_failure("Model response carried no text", body_code=_body_code(body))

        msg_id = body.get("id")
        user_msg.optimistic = False
        placeholder.streaming = False
        placeholder.content = text
        if msg_id:
            placeholder.id = str(msg_id)
        usage = TokenUsage.from_any(body.get("usage"))
        conv.bus.publish(MESSAGE_SENT, message_id=placeholder.id)
        if usage:
            conv.bus.publish(USAGE_CHANGED, **usage.to_dict())
        return AssembledReply(id=str(msg_id) if msg_id else None, text=text, usage=usage, message=placeholder)
