# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/api/sse/chat.py

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

import anthropic
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from aquabot_ai_app.apps.chat.api.resolvers import get_user_id
from aquabot_ai_app.apps.chat.sdk.config import Settings, get_settings
from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot, UserPreferences
from aquabot_ai_app.apps.chat.sdk.diagnosis.models import DiagnosisKind
from aquabot_ai_app.apps.chat.sdk.prompts.composer import compose, summarizer_prompt
from aquabot_ai_app.apps.chat.sdk.protocol import ChatReply, ChatRequest, ErrorBody
from aquabot_ai_app.apps.chat.sdk.segments.parser import parse
from aquabot_ai_app.apps.chat.sdk.util import json_dumps
from aquabot_ai_app.infra.llm.llm_data_model import Message, ModelRequest, StreamEvent
from aquabot_ai_app.infra.llm.streaming import complete_once, stream_anthropic_events
from aquabot_ai_app.infra.llm.util import calculate_tokens, needs_summarization, summarization_split
from aquabot_ai_app.infra.service_hub.errors import (
    AquabotError, RetryExhaustedError, TankNotFoundError, TransportError,
)

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png")
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _sse_frame(data: Dict[str, Any]) -> str:
    return f"data: {json_dumps(data)}\n\n"


def _error(status: int, code: str, message: str, *, retryable: bool = False) -> HTTPException:
    return HTTPException(status_code=status,
                         detail=ErrorBody(code=code, message=message, retryable=retryable).dump_model())


def map_error(e: BaseException) -> HTTPException:
    if isinstance(e, TankNotFoundError):
        return _error(404, "NOT_FOUND", "Tank not found or you don't have access")
    if isinstance(e, TransportError):
        if e.is_rate_limited:
            return _error(429, "RATE_LIMIT_EXCEEDED", "AI service is busy. Please try again shortly.",
                          retryable=True)
        return _error(503, "AI_UNAVAILABLE", "AI service unavailable", retryable=True)
    if isinstance(e, RetryExhaustedError):
        return _error(503, "AI_UNAVAILABLE", e.message, retryable=True)
    if isinstance(e, anthropic.APIStatusError):
        if e.status_code == 429:
            return _error(429, "RATE_LIMIT_EXCEEDED", "AI service is busy. Please try again shortly.",
                          retryable=True)
        return _error(503, "AI_UNAVAILABLE", "AI service unavailable", retryable=True)
    if isinstance(e, anthropic.APIError):
        return _error(503, "AI_UNAVAILABLE", "AI service unavailable", retryable=True)
    if isinstance(e, AquabotError):
        return _error(400, e.code, e.message, retryable=e.retryable)
    return _error(500, "INTERNAL_SERVER_ERROR", "Unexpected error")


async def _load_context(app, tank_id: Optional[str], user_id: str):
    """-> (snapshot | None, preferences | None)"""
    aggregator = app.state.aggregator
    if tank_id:
        snapshot: ContextSnapshot = await aggregator.build(tank_id, user_id)
        return snapshot, snapshot.preferences
    prefs: Optional[UserPreferences] = await aggregator.fetch_preferences(user_id)
    return None, prefs


def create_chat_router(*, app, settings: Optional[Settings] = None) -> APIRouter:
    """
    Mount with:
        app.state.aggregator = ContextAggregator(source)
        app.state.anthropic = create_client(settings.ANTHROPIC_API_KEY)
        app.state.diagnosis = PhotoDiagnosisCycle(AnthropicVisionClient(app.state.anthropic))
        app.include_router(create_chat_router(app=app), prefix="/api/ai", tags=["AI"])
    """
    router = APIRouter()
    settings = settings or getattr(app.state, "settings", None) or get_settings()

    async def _fit_history(system: str, history: List[Message]) -> Tuple[str, List[Message]]:
        """Over the token threshold, older turns are folded into a summary on the system prompt."""
        threshold = settings.SUMMARIZE_THRESHOLD_TOKENS
        if not needs_summarization(history, calculate_tokens(system), threshold=threshold):
            return system, history
        older, kept = summarization_split(history, target_tokens=threshold // 2)
        if not older:
            return system, history
        transcript = "\n\n".join(f"{m.role}: {m.content}" for m in older)
        request = ModelRequest(system=summarizer_prompt(),
                               messages=[Message(role="user", content=transcript)], stream=False)
        try:
            summary, _, _ = await complete_once(app.state.anthropic, request,
                                                model_name=settings.ANTHROPIC_MODEL_CHAT,
                                                max_tokens=settings.MAX_OUTPUT_TOKENS)
        except anthropic.APIError as e:
            logger.warning("[chat] history summary failed, dropping %d older messages: %s", len(older), e)
            return system, kept
        logger.info("[chat] summarized %d older messages, keeping %d", len(older), len(kept))
        return f"{system}\n\n## Earlier in This Conversation\n{summary.strip()}", kept

    async def _build_request(snapshot, prefs, req: ChatRequest) -> ModelRequest:
        history = [Message(role=m.role, content=m.content) for m in req.chat_history if m.content]
        limit = settings.CHAT_HISTORY_LIMIT
        history = history[-limit:] if limit > 0 else []
        skill = snapshot.profile.skill_level if snapshot is not None else None
        system, history = await _fit_history(compose(snapshot, skill, preferences=prefs), history)
        return ModelRequest(
            system=system,
            messages=history + [Message(role="user", content=req.message)],
            max_tokens=settings.MAX_OUTPUT_TOKENS,
        )

    # ---------- CHAT ----------
    @router.post("/chat")
    async def chat(payload: ChatRequest, stream: bool = False, user_id: str = Depends(get_user_id)):
        try:
            snapshot, prefs = await _load_context(app, payload.tank_id, user_id)
        except TankNotFoundError as e:
            logger.info("[chat] %s", e)
            raise map_error(e)

        model_request = await _build_request(snapshot, prefs, payload)
        client = app.state.anthropic

        if not stream:
            try:
                text, msg_id, usage = await complete_once(client, model_request.model_copy(update={"stream": False}),
                                                          model_name=settings.ANTHROPIC_MODEL_CHAT,
                                                          max_tokens=settings.MAX_OUTPUT_TOKENS)
            except anthropic.APIError as e:
                logger.error("[chat] one-shot request failed for user=%s: %s", user_id, e)
                raise map_error(e)
            return ChatReply(id=msg_id, text=text,
                             segments=[s.to_dict() for s in parse(text)],
                             usage=usage.to_dict() if usage else None).dump_model()

        events = stream_anthropic_events(client, model_request, model_name=settings.ANTHROPIC_MODEL_CHAT,
                                         max_tokens=settings.MAX_OUTPUT_TOKENS)
        # pull the first record here so handshake failures still get a proper status code
        try:
            first: Optional[StreamEvent] = await events.__anext__()
        except StopAsyncIteration:
            first = None
        except anthropic.APIError as e:
            logger.error("[chat] stream handshake failed for user=%s: %s", user_id, e)
            raise map_error(e)

        async def gen():
            try:
                if first is not None:
                    yield _sse_frame(first.to_dict())
                async for ev in events:
                    yield _sse_frame(ev.to_dict())
            except anthropic.APIError as e:
                logger.error("[chat] stream failed for user=%s: %s", user_id, e)
                yield _sse_frame(StreamEvent.error("Stream interrupted").to_dict())
            finally:
                await events.aclose()

        return StreamingResponse(
            gen(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "X-Accel-Buffering": "no",      # nginx
            },
        )

    # ---------- PHOTO DIAGNOSIS ----------
    @router.post("/photo-diagnosis")
    async def photo_diagnosis(
            image: UploadFile = File(...),
            diagnosis_type: str = Form(...),
            tank_id: Optional[str] = Form(default=None),
            user_id: str = Depends(get_user_id),
    ):
        if (image.content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
            raise _error(400, "INVALID_INPUT", "Invalid file type. Only JPEG and PNG are allowed.")
        try:
            kind = DiagnosisKind(diagnosis_type)
        except ValueError:
            raise _error(400, "INVALID_INPUT", f"Unknown diagnosis_type: {diagnosis_type}")
        data = await image.read()
        if not data:
            raise _error(400, "INVALID_INPUT", "No image file provided")
        if len(data) > MAX_IMAGE_BYTES:
            raise _error(413, "INVALID_INPUT", "File too large. Maximum size is 10MB.")

        snapshot = None
        try:
            if tank_id:
                snapshot, _ = await _load_context(app, tank_id, user_id)
            result = await app.state.diagnosis.diagnose(data, image.content_type, kind, snapshot)
        except (TankNotFoundError, RetryExhaustedError, TransportError) as e:
            logger.error("[photo-diagnosis] user=%s kind=%s failed: %s", user_id, kind.value, e)
            raise map_error(e)

        out = result.to_dict()
        out["diagnosisType"] = kind.value
        return out

    return router


def create_health_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    return router

