# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/prompts/context_format.py
from typing import List, Optional

from aquabot_ai_app.apps.chat.sdk.context.snapshot import (
    ContextSnapshot, ParameterReading, UserPreferences,
)
from aquabot_ai_app.apps.chat.sdk.util import fmt_date, fmt_num

UPCOMING_TASKS_SHOWN = 5
LEARNED_FACTS_SHOWN = 10

_EXPERIENCE = {
    "first_timer": "First-time aquarium keeper",
    "returning": "Returning to the hobby",
    "experienced": "Experienced aquarist",
    "expert": "Expert/Breeder level",
}
_SITUATION = {
    "new_tank": "Setting up a new tank",
    "existing_tank": "Managing an existing tank",
    "exploring": "Exploring options before starting",
    "multiple_tanks": "Managing multiple tanks",
}
_GOAL = {
    "low_maintenance": "Low-maintenance setup",
    "planted_tank": "Beautiful planted tank",
    "specific_fish": "Keep specific fish species",
    "reef_tank": "Reef/coral tank",
}
_DEPTH = {
    "brief": "Brief and to-the-point",
    "moderate": "Moderate detail",
    "detailed": "Detailed explanations with background",
}
_CHALLENGE = {
    "keeping_alive": "Keeping fish alive",
    "water_quality": "Maintaining water quality",
    "compatibility": "Species compatibility",
    "maintenance": "Regular maintenance",
    "chemistry": "Understanding water chemistry",
    "none": "No current challenges",
}

# (key, label, unit suffix)
_READING_LABELS = (
    ("ph", "pH", ""),
    ("ammonia", "Ammonia", " ppm"),
    ("nitrite", "Nitrite", " ppm"),
    ("nitrate", "Nitrate", " ppm"),
    ("temperature", "Temp", "°F"),
    ("salinity", "Salinity", ""),
)


def format_reading(reading: ParameterReading) -> str:
    parts = [f"{label}: {fmt_num(reading.values[key])}{unit}"
             for key, label, unit in _READING_LABELS if key in reading.values]
    return ", ".join(parts)


def format_snapshot(snapshot: ContextSnapshot) -> str:
    tank = snapshot.tank
    lines: List[str] = [f"## Tank: {tank.name}", f"- Type: {tank.type}"]
    if tank.volume_gallons is not None:
        lines.append(f"- Volume: {fmt_num(tank.volume_gallons)} gallons")
    if tank.dimensions:
        lines.append(f"- Dimensions: {tank.dimensions}")
    if tank.substrate:
        lines.append(f"- Substrate: {tank.substrate}")
    if tank.setup_date:
        lines.append(f"- Setup Date: {fmt_date(tank.setup_date)}")
    if tank.notes:
        lines.append(f"- Notes: {tank.notes}")

    latest = snapshot.latest_reading
    if latest is not None:
        rendered = format_reading(latest)
        if rendered:
            lines.append("\n## Latest Water Parameters")
            lines.append(f"As of {fmt_date(latest.measured_at)}: {rendered}")
        older = [r for r in snapshot.parameters[1:] if r.values]
        if older:
            lines.append("Earlier readings (newest first):")
            for r in older:
                lines.append(f"- {fmt_date(r.measured_at)}: {format_reading(r)}")

    if snapshot.livestock:
        lines.append("\n## Livestock")
        for animal in snapshot.livestock:
            species = f" ({animal.species})" if animal.species else ""
            lines.append(f"- {animal.quantity}x {animal.name}{species}")

    upcoming = [t for t in snapshot.maintenance if t.next_due]
    if upcoming:
        lines.append("\n## Upcoming Maintenance")
        for task in upcoming[:UPCOMING_TASKS_SHOWN]:
            line = f"- {task.title}: due {fmt_date(task.next_due)}"
            if task.last_completed:
                line += f" (last done {fmt_date(task.last_completed)})"
            lines.append(line)

    lines.append("\n## User Profile")
    lines.append(f"- Skill Level: {snapshot.profile.skill_level.value}")
    lines.append(f"- Units: {snapshot.profile.volume_unit}, {snapshot.profile.temperature_unit}")
    return "\n".join(lines)


def _experience(prefs: UserPreferences) -> str:
    if not prefs.experience_level:
        return "Unknown"
    text = _EXPERIENCE.get(prefs.experience_level, prefs.experience_level)
    years = prefs.years_in_hobby
    if years:
        text += f" ({years} year{'' if years == 1 else 's'} in hobby)"
    return text


def format_preferences(prefs: Optional[UserPreferences]) -> str:
    if prefs is None:
        return ""
    lines: List[str] = [
        "## User Profile & Memory",
        "",
        "This user's background and preferences:",
        "",
        f"- **Experience:** {_experience(prefs)}",
        f"- **Current situation:** "
        f"{_SITUATION.get(prefs.current_situation, prefs.current_situation) if prefs.current_situation else 'Not specified'}",
    ]
    if prefs.primary_goal:
        lines.append(f"- **Goal:** {_GOAL.get(prefs.primary_goal, prefs.primary_goal)}")
    challenges = ", ".join(_CHALLENGE.get(c, c) for c in prefs.current_challenges) or "None specified"
    lines.append(f"- **Current challenges:** {challenges}")
    lines.append(f"- **Explanation preference:** {_DEPTH.get(prefs.explanation_depth, prefs.explanation_depth)}")
    if prefs.wants_scientific_names:
        lines.append("- **Prefers scientific names** when discussing species")
    if prefs.previous_tank_types:
        lines.append(f"- **Previous tank types:** {', '.join(prefs.previous_tank_types)}")
    if prefs.motivation:
        lines.append(f"- **Motivation:** {prefs.motivation}")

    if prefs.learned_facts:
        lines += ["", "### Previously Learned Facts"]
        lines += [f"- {fact}" for fact in prefs.learned_facts[:LEARNED_FACTS_SHOWN]]

    if prefs.interaction_summary:
        lines += ["", "### Conversation History Summary", prefs.interaction_summary]

    if prefs.avoided_topics:
        lines += ["", "### Topics to Avoid",
                  f"The user has indicated they prefer not to discuss: {', '.join(prefs.avoided_topics)}"]

    guidelines = [
        "Tailor explanations to their experience level",
        "Reference their stated goal when making recommendations",
        "Address their current challenges proactively when relevant",
        "Match their preferred explanation depth",
    ]
    if prefs.wants_scientific_names:
        guidelines.append("Include scientific names for species")
    if prefs.communication_style == "professional":
        guidelines.append("Use a professional, technical tone")
    elif prefs.communication_style == "casual":
        guidelines.append("Keep the tone casual and approachable")
    lines += ["", "### Personalization Guidelines", "", "Use this context to:"]
    lines += [f"{i}. {g}" for i, g in enumerate(guidelines, start=1)]
    return "\n".join(lines)
