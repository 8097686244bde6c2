# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/segments/parser.py
"""
Split assistant text into ordered segments: prose and fenced structured blocks.

Never raises on model output. A block whose JSON does not parse, or parses into the
wrong shape, or whose kind has no renderer, comes back as a TextSegment holding the
block's raw inner text.
"""
from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Sequence

from pydantic import ValidationError

from aquabot_ai_app.apps.chat.sdk.segments.grammar import (
    BlockKind, SUPPORTED_KINDS, STRUCTURED_KINDS,
)
from aquabot_ai_app.apps.chat.sdk.segments.models import (
    Segment, TextSegment, ActionButtonsSegment, SEGMENT_TYPES,
)

logger = logging.getLogger(__name__)

_TAGS = "|".join(re.escape(k) for k in sorted(STRUCTURED_KINDS, key=len, reverse=True))
_BLOCK_RE = re.compile(r"```(" + _TAGS + r")[ \t]*\r?\n([\s\S]*?)```")
_OPEN_RE = re.compile(r"```(" + _TAGS + r")(?:[ \t]*(?:\r?\n|$))")


def strip_incomplete_block(text: str) -> str:
    """
    For live rendering: drop a structured block that has opened at the tail but not closed yet,
    so half-written JSON never reaches the screen.
    """
    last = text.rfind("```")
    if last < 0:
        return text
    tail = text[last:]
    if _OPEN_RE.match(tail) and tail.count("```") == 1:
        return text[:last].rstrip()
    return text


def _structured(kind: str, inner: str, source: str) -> Optional[Segment]:
    if kind not in SUPPORTED_KINDS:
        return None
    try:
        value = json.loads(inner)
    except (ValueError, RecursionError):
        logger.debug("Malformed JSON in %s block, rendering as text", kind)
        return None
    try:
        if kind == BlockKind.action_buttons.value:
            return ActionButtonsSegment.from_wire(value, source=source)
        if not isinstance(value, dict):
            return None
        return SEGMENT_TYPES[kind].model_validate(value).model_copy(update={"source": source})
    except ValidationError as e:
        logger.debug("Invalid %s block shape, rendering as text: %s", kind, e.errors()[:3])
        return None


def _prose(segments: List[Segment], text: str):
    text = text.strip()
    if text:
        segments.append(TextSegment(content=text))


def parse(text: str) -> List[Segment]:
    segments: List[Segment] = []
    pos = 0
    for m in _BLOCK_RE.finditer(text):
        _prose(segments, text[pos:m.start()])
        kind, inner = m.group(1), m.group(2).strip()
        seg = _structured(kind, inner, m.group(0))
        segments.append(seg if seg is not None else TextSegment(content=inner, source=m.group(0)))
        pos = m.end()
    _prose(segments, text[pos:])
    if not segments:
        segments.append(TextSegment(content=text))
    return segments


def to_source(segments: Sequence[Segment]) -> str:
    """Reassemble text from segments, using each block's original span where known."""
    return "\n\n".join(s.to_source() for s in segments)


def parse_live(text: str) -> List[Segment]:
    """Parse a still-streaming text."""
    return parse(strip_incomplete_block(text))
