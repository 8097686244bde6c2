# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/context/aggregator.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TypeVar

from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot, UserPreferences
from aquabot_ai_app.apps.chat.sdk.context.sources import (
    TankDataSource, tank_from_row, reading_from_row, livestock_from_row,
    maintenance_from_row, profile_from_row, preferences_from_row,
)
from aquabot_ai_app.infra.service_hub.errors import TankNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class ContextAggregator:
    """
    Fans out the six reads for one (tank, user) pair and joins them into a ContextSnapshot.

    The tank read is mandatory: empty or failed -> TankNotFoundError.
    Every other read degrades to its empty form when it fails.
    """

    def __init__(self, source: TankDataSource, *, parameter_limit: int = 5, maintenance_limit: int = 10):
        self.source = source
        self.parameter_limit = parameter_limit
        self.maintenance_limit = maintenance_limit

    async def build(self, tank_id: str, user_id: str) -> ContextSnapshot:
        results = await asyncio.gather(
            self.source.fetch_tank(tank_id, user_id),
            self.source.fetch_profile(user_id),
            self.source.fetch_parameters(tank_id, self.parameter_limit),
            self.source.fetch_livestock(tank_id),
            self.source.fetch_maintenance(tank_id, self.maintenance_limit),
            self.source.fetch_preferences(user_id),
            return_exceptions=True,
        )
        tank_res, profile_res, params_res, livestock_res, maint_res, prefs_res = results

        if isinstance(tank_res, BaseException):
            logger.error("Tank fetch failed for tank=%s user=%s: %s", tank_id, user_id, tank_res)
            raise TankNotFoundError(tank_id, user_id) from tank_res
        tank = tank_from_row(tank_res) if tank_res else None
        if tank is None:
            raise TankNotFoundError(tank_id, user_id)

        profile = profile_from_row(self._degrade("profile", profile_res, None))
        parameters = self._rows("parameters", params_res, reading_from_row)[: self.parameter_limit]
        livestock = self._rows("livestock", livestock_res, livestock_from_row)
        maintenance = [t for t in self._rows("maintenance", maint_res, maintenance_from_row) if t is not None]
        maintenance.sort(key=lambda t: t.next_due or _FAR_FUTURE)
        preferences = preferences_from_row(self._degrade("preferences", prefs_res, None))

        snapshot = ContextSnapshot(
            tank=tank,
            parameters=tuple(parameters),
            livestock=tuple(livestock),
            maintenance=tuple(maintenance[: self.maintenance_limit]),
            profile=profile,
            preferences=preferences,
        )
        logger.debug(
            "Context for tank=%s: %d readings, %d livestock, %d tasks, prefs=%s",
            tank_id, len(snapshot.parameters), len(snapshot.livestock), len(snapshot.maintenance),
            preferences.summary() if preferences else "No user preferences (using defaults)",
        )
        return snapshot

    async def fetch_preferences(self, user_id: str) -> Optional[UserPreferences]:
        """Preferences alone, for chats with no tank selected."""
        try:
            row = await self.source.fetch_preferences(user_id)
        except Exception as e:
            logger.warning("Preferences fetch failed for user=%s: %s", user_id, e)
            return None
        return preferences_from_row(row)

    @staticmethod
    def _degrade(name: str, res: Any, default: Any) -> Any:
        if isinstance(res, BaseException):
            logger.warning("Context source '%s' unavailable, using empty value: %s", name, res)
            return default
        return res

    def _rows(self, name: str, res: Any, coerce: Callable[[Any], T]) -> List[T]:
        rows = self._degrade(name, res, [])
        if not isinstance(rows, (list, tuple)):
            logger.warning("Context source '%s' returned %s, expected rows", name, type(rows).__name__)
            return []
        out = []
        for row in rows:
            if not hasattr(row, "get"):
                continue
            out.append(coerce(row))
        return out
