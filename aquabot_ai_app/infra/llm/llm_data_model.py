# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# infra/llm/llm_data_model.py

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Any, List, Dict, Literal
from pydantic import BaseModel, Field


class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ImagePart(BaseModel):
    """Single inline image attached to a vision request."""
    media_type: Literal["image/jpeg", "image/png"] = "image/jpeg"
    data: bytes

    def to_anthropic_block(self) -> Dict[str, Any]:
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": self.media_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            },
        }


class ModelRequest(BaseModel):
    """
    What the pipeline sends to the model transport:
      {system, messages: [{role, content}], image?}
    """
    system: str
    messages: List[Message] = Field(default_factory=list)
    image: Optional[ImagePart] = None
    max_tokens: Optional[int] = None
    stream: bool = True

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "system": self.system,
            "messages": [m.model_dump() for m in self.messages],
            "stream": self.stream,
        }
        if self.max_tokens:
            payload["max_tokens"] = self.max_tokens
        return payload


class StreamEventType(str, Enum):
    text_delta = "text_delta"
    done = "done"
    error = "error"


@dataclass
class TokenUsage:
    """Standardized token usage across providers."""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        """Calculate total if not provided."""
        if self.total_tokens == 0:
            self.total_tokens = self.input_tokens + self.output_tokens

    @classmethod
    def from_any(cls, raw: Any) -> Optional["TokenUsage"]:
        """Accepts a provider usage object or a {input_tokens, output_tokens} dict."""
        if raw is None:
            return None
        if isinstance(raw, dict):
            get = raw.get
        else:
            get = lambda k, d=None: getattr(raw, k, d)
        try:
            return cls(
                input_tokens=int(get("input_tokens", 0) or 0),
                output_tokens=int(get("output_tokens", 0) or 0),
            )
        except (TypeError, ValueError):
            return None

    def to_dict(self) -> Dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class StreamEvent:
    """One decoded record of the line-delimited response stream."""
    type: StreamEventType
    text: str = ""
    id: Optional[str] = None
    message: Optional[str] = None
    usage: Optional[TokenUsage] = None

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(type=StreamEventType.text_delta, text=text)

    @classmethod
    def done(cls, id: str, usage: Optional[TokenUsage] = None) -> "StreamEvent":
        return cls(type=StreamEventType.done, id=id, usage=usage)

    @classmethod
    def error(cls, message: str = "Stream interrupted") -> "StreamEvent":
        return cls(type=StreamEventType.error, message=message)

    def to_dict(self) -> Dict[str, Any]:
        if self.type == StreamEventType.text_delta:
            return {"type": self.type.value, "text": self.text}
        if self.type == StreamEventType.done:
            out: Dict[str, Any] = {"type": self.type.value, "id": self.id}
            if self.usage:
                out["usage"] = self.usage.to_dict()
            return out
        return {"type": self.type.value, "message": self.message}


class ContentType(Enum):
    """Types of content in model responses."""
    TEXT = "text"
    UNKNOWN = "unknown"


@dataclass
class ContentBlock:
    """Standardized content block."""
    type: ContentType
    content: str
    raw_data: Any = None

    @classmethod
    def from_anthropic_block(cls, block: Any) -> 'ContentBlock':
        if getattr(block, "type", None) == "text":
            return cls(type=ContentType.TEXT, content=block.text, raw_data=block)
        return cls(type=ContentType.UNKNOWN, content=str(block), raw_data=block)


def text_of(blocks: List[ContentBlock]) -> str:
    return "".join(b.content for b in blocks if b.type == ContentType.TEXT)
