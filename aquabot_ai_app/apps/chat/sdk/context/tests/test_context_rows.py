# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from aquabot_ai_app.apps.chat.sdk.context.snapshot import SkillLevel
from aquabot_ai_app.apps.chat.sdk.context.sources import (
    tank_from_row, reading_from_row, livestock_from_row, maintenance_from_row,
    profile_from_row, preferences_from_row,
)


def test_tank_row_coercion():
    assert tank_from_row({"name": "no id"}) is None
    tank = tank_from_row({"id": 5, "volume_gallons": "-3", "length_inches": 20})
    assert tank.id == "5"
    assert tank.name == "My Tank"
    assert tank.volume_gallons is None
    assert tank.dimensions is None


def test_reading_skips_garbage_and_keeps_zero():
    r = reading_from_row({"ph": "abc", "ammonia_ppm": 0, "temperature_f": True, "salinity": float("nan")})
    assert r.values == {"ammonia": 0.0}


def test_livestock_and_maintenance_rows():
    fish = livestock_from_row({"species_common_name": "Guppy", "quantity": 0})
    assert fish.species == "Guppy"
    assert fish.quantity == 1
    assert fish.name == "Unknown"
    assert maintenance_from_row({}) is None
    task = maintenance_from_row({"task_type": "water_testing"})
    assert task.title == "water testing"


def test_profile_and_preferences_rows():
    assert profile_from_row(None).skill_level == SkillLevel.beginner
    assert profile_from_row({"skill_level": "EXPERT"}).skill_level == SkillLevel.beginner
    assert preferences_from_row(None) is None
    prefs = preferences_from_row({
        "years_in_hobby": -2,
        "current_challenges": ["water_quality", 3, ""],
        "ai_learned_facts": '["Prefers planted tanks"]',
        "onboarding_completed_at": "2025-01-01",
    })
    assert prefs.years_in_hobby is None
    assert "water_quality" in prefs.current_challenges
    assert prefs.learned_facts == ["Prefers planted tanks"]
    assert prefs.onboarding_complete
