# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/actions/endpoints.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp

from aquabot_ai_app.apps.chat.sdk.actions.models import ActionType, MutationResult
from aquabot_ai_app.infra.service_hub.errors import MutationError

logger = logging.getLogger(__name__)


class MutationEndpoints(Protocol):
    """One call per action type. Each returns a MutationResult or raises MutationError."""

    async def log_parameters(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult: ...

    async def add_livestock(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult: ...

    async def schedule_maintenance(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult: ...

    async def complete_maintenance(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult: ...


async def dispatch(endpoints: MutationEndpoints, action: ActionType, tank_id: str,
                   payload: Dict[str, Any]) -> MutationResult:
    handler = getattr(endpoints, action.value)
    return await handler(tank_id, payload)


class HttpMutationEndpoints:
    """POSTs {action, tank_id, payload} to the app's action execution route."""

    def __init__(self, url: str, *, session: Optional[aiohttp.ClientSession] = None,
                 headers: Optional[Dict[str, str]] = None, timeout_s: float = 30.0):
        self.url = url
        self._session = session
        self._headers = headers or {}
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)

    @classmethod
    def from_settings(cls, settings, *, headers: Optional[Dict[str, str]] = None) -> "HttpMutationEndpoints":
        return cls(settings.ACTIONS_ENDPOINT_URL, headers=headers, timeout_s=settings.ACTIONS_TIMEOUT_SECONDS)

    async def _post(self, action: ActionType, tank_id: str, payload: Dict[str, Any]) -> MutationResult:
        body = {"action": action.value, "tank_id": tank_id, "payload": payload}
        own = self._session is None
        session = self._session or aiohttp.ClientSession(timeout=self._timeout)
        try:
            async with session.post(self.url, json=body, headers=self._headers) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = {}
                if not isinstance(data, dict):
                    data = {}
                if resp.status >= 400 or data.get("success") is False:
                    err = data.get("error") if isinstance(data.get("error"), dict) else {}
                    code = err.get("code") or f"HTTP_{resp.status}"
                    message = err.get("message") or data.get("message") or f"HTTP {resp.status}"
                    logger.warning("Action %s for tank=%s rejected: %s %s", action.value, tank_id, code, message)
                    return MutationResult(success=False, message=message, code=code)
                return MutationResult(success=True, message=data.get("message") or "",
                                      data=data.get("data") if isinstance(data.get("data"), dict) else {})
        except aiohttp.ClientError as e:
            raise MutationError(f"Action endpoint unreachable: {e}", stage="dispatch",
                                context={"action": action.value}) from e
        finally:
            if own:
                await session.close()

    async def log_parameters(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult:
        return await self._post(ActionType.log_parameters, tank_id, payload)

    async def add_livestock(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult:
        return await self._post(ActionType.add_livestock, tank_id, payload)

    async def schedule_maintenance(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult:
        return await self._post(ActionType.schedule_maintenance, tank_id, payload)

    async def complete_maintenance(self, tank_id: str, payload: Dict[str, Any]) -> MutationResult:
        return await self._post(ActionType.complete_maintenance, tank_id, payload)
