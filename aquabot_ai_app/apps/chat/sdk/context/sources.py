# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/context/sources.py
"""
Read contract of the data store, and coercion of its rows into snapshot records.

Rows arrive as plain mappings of unknown shape. Every field is coerced on its own:
a bad field falls back to its default, it never poisons the whole row.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Protocol

from aquabot_ai_app.apps.chat.sdk.context.snapshot import (
    TankInfo, ParameterReading, LivestockEntry, MaintenanceTask,
    UserProfile, UserPreferences, SkillLevel,
)
from aquabot_ai_app.apps.chat.sdk.util import (
    as_str, as_float, as_int, as_bool, as_datetime, as_str_list,
)

Row = Mapping[str, Any]


class TankDataSource(Protocol):
    async def fetch_tank(self, tank_id: str, user_id: str) -> Optional[Row]: ...

    async def fetch_profile(self, user_id: str) -> Optional[Row]: ...

    async def fetch_parameters(self, tank_id: str, limit: int) -> List[Row]:
        """Newest first."""
        ...

    async def fetch_livestock(self, tank_id: str) -> List[Row]:
        """Active, not deleted."""
        ...

    async def fetch_maintenance(self, tank_id: str, limit: int) -> List[Row]:
        """Active tasks, next_due_date ascending."""
        ...

    async def fetch_preferences(self, user_id: str) -> Optional[Row]: ...


# store column -> reading key
PARAMETER_COLUMNS: Dict[str, str] = {
    "ph": "ph",
    "ammonia_ppm": "ammonia",
    "nitrite_ppm": "nitrite",
    "nitrate_ppm": "nitrate",
    "temperature_f": "temperature",
    "salinity": "salinity",
}


def tank_from_row(row: Row) -> Optional[TankInfo]:
    tank_id = as_str(row.get("id"))
    if not tank_id:
        return None
    volume = as_float(row.get("volume_gallons"))
    return TankInfo(
        id=tank_id,
        name=as_str(row.get("name"), "My Tank"),
        type=as_str(row.get("type"), "freshwater"),
        volume_gallons=volume if volume is not None and volume > 0 else None,
        length_inches=as_float(row.get("length_inches")),
        width_inches=as_float(row.get("width_inches")),
        height_inches=as_float(row.get("height_inches")),
        substrate=as_str(row.get("substrate")),
        setup_date=as_datetime(row.get("setup_date")),
        notes=as_str(row.get("notes")),
    )


def reading_from_row(row: Row) -> ParameterReading:
    values: Dict[str, float] = {}
    for column, key in PARAMETER_COLUMNS.items():
        v = as_float(row.get(column))
        if v is None:
            # also accept already-normalized keys
            v = as_float(row.get(key))
        if v is not None:
            values[key] = v
    return ParameterReading(measured_at=as_datetime(row.get("measured_at")), values=values)


def livestock_from_row(row: Row) -> LivestockEntry:
    species = row.get("species")
    if isinstance(species, Mapping):
        species_name = as_str(species.get("common_name"))
    else:
        species_name = as_str(row.get("species_common_name")) or as_str(species)
    quantity = as_int(row.get("quantity"), 1)
    return LivestockEntry(
        name=as_str(row.get("custom_name")) or as_str(row.get("nickname")) or "Unknown",
        species=species_name,
        quantity=quantity if quantity and quantity >= 1 else 1,
        date_added=as_datetime(row.get("date_added")),
    )


def maintenance_from_row(row: Row) -> Optional[MaintenanceTask]:
    title = as_str(row.get("title"))
    task_type = as_str(row.get("type")) or as_str(row.get("task_type"))
    if not title and not task_type:
        return None
    last = row.get("last_completed_at")
    logs = row.get("maintenance_logs")
    if last is None and isinstance(logs, list) and logs and isinstance(logs[0], Mapping):
        last = logs[0].get("completed_at")
    return MaintenanceTask(
        type=task_type or "custom",
        title=title or task_type.replace("_", " "),
        next_due=as_datetime(row.get("next_due_date")),
        last_completed=as_datetime(last),
    )


def profile_from_row(row: Optional[Row]) -> UserProfile:
    if not row:
        return UserProfile()
    return UserProfile(
        skill_level=SkillLevel.coerce(row.get("skill_level")),
        volume_unit=as_str(row.get("unit_preference_volume"), "gallons"),
        temperature_unit=as_str(row.get("unit_preference_temp"), "fahrenheit"),
    )


def _learned_facts(raw: Any) -> List[str]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError):
            return []
    if not isinstance(raw, list):
        return []
    facts = []
    for item in raw:
        if isinstance(item, Mapping):
            item = item.get("fact")
        s = as_str(item)
        if s:
            facts.append(s)
    return facts


def preferences_from_row(row: Optional[Row]) -> Optional[UserPreferences]:
    if not row:
        return None
    years = as_int(row.get("years_in_hobby"))
    return UserPreferences(
        experience_level=as_str(row.get("experience_level")),
        years_in_hobby=years if years is not None and years >= 0 else None,
        previous_tank_types=as_str_list(row.get("previous_tank_types")),
        current_situation=as_str(row.get("current_situation")),
        primary_goal=as_str(row.get("primary_goal")),
        motivation=as_str(row.get("motivation")),
        explanation_depth=as_str(row.get("explanation_depth"), "moderate"),
        wants_scientific_names=as_bool(row.get("wants_scientific_names")),
        communication_style=as_str(row.get("communication_style"), "friendly"),
        current_challenges=as_str_list(row.get("current_challenges")),
        avoided_topics=as_str_list(row.get("avoided_topics")),
        learned_facts=_learned_facts(row.get("ai_learned_facts")),
        interaction_summary=as_str(row.get("ai_interaction_summary")),
        onboarding_complete=row.get("onboarding_completed_at") is not None,
    )
