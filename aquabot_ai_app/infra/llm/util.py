# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import re
import math
import random
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from aquabot_ai_app.infra.llm.llm_data_model import Message
from aquabot_ai_app.infra.service_hub.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Rough per-message framing overhead (role markers etc.)
MESSAGE_TOKEN_OVERHEAD = 4

TOKEN_LIMITS = {
    "context_window": 200_000,
    "summarize_threshold": 150_000,
    "max_output": 4_096,
    "system_prompt_reserve": 5_000,
}

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def calculate_tokens(text: str) -> int:
    """
    Approximate token count: ~1 token per 4 characters, rounded up.
    """
    return math.ceil(len(text) / 4) if text else 0


def estimate_messages_tokens(messages: Sequence[Message]) -> int:
    return sum(calculate_tokens(m.content) + MESSAGE_TOKEN_OVERHEAD for m in messages)


def needs_summarization(messages: Sequence[Message], system_prompt_tokens: int = 0,
                        threshold: int = TOKEN_LIMITS["summarize_threshold"]) -> bool:
    total = estimate_messages_tokens(messages) + system_prompt_tokens
    return total > threshold


def summarization_split(messages: Sequence[Message],
                        target_tokens: int = TOKEN_LIMITS["summarize_threshold"] // 2,
                        min_keep: int = 10) -> Tuple[List[Message], List[Message]]:
    """
    Split history into (to_summarize, to_keep).
    Keeps the newest messages that fit in target_tokens, never fewer than min_keep.
    """
    msgs = list(messages)
    kept_tokens = 0
    keep_from = len(msgs)
    for i in range(len(msgs) - 1, -1, -1):
        cost = calculate_tokens(msgs[i].content) + MESSAGE_TOKEN_OVERHEAD
        if kept_tokens + cost > target_tokens and len(msgs) - i > min_keep:
            break
        kept_tokens += cost
        keep_from = i
    keep_from = min(keep_from, max(0, len(msgs) - min_keep))
    return msgs[:keep_from], msgs[keep_from:]


def strip_code_fences(s: str) -> str:
    """Unwraps a ```json ... ``` (or bare ```) fence if the text has one."""
    s = (s or "").strip()
    m = _FENCE_RE.search(s)
    if m:
        return m.group(1).strip()
    return s


def find_balanced_json_object(s: str) -> Optional[str]:
    """
    Return the first complete {...} span in s, honoring JSON string quoting and escapes.
    None when no opening brace is ever closed.
    """
    start = s.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(s)):
        ch = s[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return s[start:i + 1]
    return None


async def retry_with_exponential_backoff(
        func: Callable[[], Awaitable[T]],
        initial_delay: float = 1,
        exponential_base: float = 2,
        jitter: bool = False,
        max_attempts: int = 3,
        errors: tuple = (Exception,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await func() up to max_attempts times. Waits initial_delay, then initial_delay*base, ...
    between attempts. Only exceptions in `errors` are retried; anything else propagates.
    Raises RetryExhaustedError(attempts, last_cause) when every attempt failed.
    """
    delay = initial_delay
    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except errors as e:
            last_error = e
            if attempt >= max_attempts:
                break
            wait = delay * (1 + random.random()) if jitter else delay
            logger.warning("Retry %d/%d in %.2f seconds due to error: %s", attempt, max_attempts, wait, e)
            await sleep(wait)
            delay *= exponential_base
    raise RetryExhaustedError(max_attempts, last_error) from last_error
