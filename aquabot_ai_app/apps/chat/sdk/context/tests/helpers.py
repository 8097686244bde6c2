# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from aquabot_ai_app.apps.chat.sdk.context.snapshot import (
    ContextSnapshot, TankInfo, ParameterReading, LivestockEntry, MaintenanceTask,
    UserProfile, SkillLevel,
)

TANK_ROW = {
    "id": "tank-1",
    "name": "Living Room",
    "type": "freshwater",
    "volume_gallons": 29,
    "length_inches": 30,
    "width_inches": 12,
    "height_inches": 18,
    "substrate": "sand",
    "setup_date": "2024-03-01T00:00:00Z",
    "notes": None,
}


class FakeTankDataSource:
    """In-memory rows; any entry of `fail` names a fetch that raises."""

    def __init__(self, *, tank: Optional[Dict[str, Any]] = TANK_ROW, profile=None, parameters=None,
                 livestock=None, maintenance=None, preferences=None, fail=()):
        self.tank = tank
        self.profile = profile
        self.parameters = parameters or []
        self.livestock = livestock or []
        self.maintenance = maintenance or []
        self.preferences = preferences
        self.fail = set(fail)
        self.calls: List[tuple] = []

    def _check(self, name: str):
        if name in self.fail:
            raise ConnectionError(f"{name} source down")

    async def fetch_tank(self, tank_id, user_id):
        self.calls.append(("tank", tank_id, user_id))
        self._check("tank")
        return self.tank

    async def fetch_profile(self, user_id):
        self.calls.append(("profile", user_id))
        self._check("profile")
        return self.profile

    async def fetch_parameters(self, tank_id, limit):
        self.calls.append(("parameters", tank_id, limit))
        self._check("parameters")
        return self.parameters[:limit]

    async def fetch_livestock(self, tank_id):
        self.calls.append(("livestock", tank_id))
        self._check("livestock")
        return self.livestock

    async def fetch_maintenance(self, tank_id, limit):
        self.calls.append(("maintenance", tank_id, limit))
        self._check("maintenance")
        return self.maintenance[:limit]

    async def fetch_preferences(self, user_id):
        self.calls.append(("preferences", user_id))
        self._check("preferences")
        return self.preferences


def make_snapshot(*, skill: SkillLevel = SkillLevel.beginner, preferences=None) -> ContextSnapshot:
    return ContextSnapshot(
        tank=TankInfo(id="tank-1", name="Living Room", volume_gallons=29,
                      length_inches=30, width_inches=12, height_inches=18, substrate="sand"),
        parameters=(
            ParameterReading(measured_at=datetime(2025, 1, 10, tzinfo=timezone.utc),
                             values={"ph": 7.2, "ammonia": 0.0, "nitrate": 20.0}),
            ParameterReading(measured_at=datetime(2025, 1, 3, tzinfo=timezone.utc),
                             values={"ph": 7.4, "ammonia": 0.25, "nitrate": 10.0}),
        ),
        livestock=(LivestockEntry(name="Neon Tetra", species="Neon Tetra", quantity=6),),
        maintenance=(MaintenanceTask(type="water_change", title="Weekly water change",
                                     next_due=datetime(2025, 1, 12, tzinfo=timezone.utc)),),
        profile=UserProfile(skill_level=skill),
        preferences=preferences,
    )
