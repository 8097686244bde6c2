# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/prompts/composer.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot, SkillLevel, UserPreferences
from aquabot_ai_app.apps.chat.sdk.prompts import sections
from aquabot_ai_app.apps.chat.sdk.prompts.context_format import format_snapshot, format_preferences
from aquabot_ai_app.apps.chat.sdk.util import utc_today


@dataclass(frozen=True)
class PromptSection:
    name: str
    text: str


@dataclass(frozen=True)
class PromptDocument:
    """Ordered policy sections plus one variable context section and a date stamp."""
    sections: Tuple[PromptSection, ...]

    def render(self) -> str:
        return "\n\n".join(s.text for s in self.sections if s.text)

    def section(self, name: str) -> Optional[PromptSection]:
        for s in self.sections:
            if s.name == name:
                return s
        return None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.sections)


def _context_section(snapshot: Optional[ContextSnapshot], preferences: Optional[UserPreferences]) -> str:
    if snapshot is not None:
        body = "# Current Tank Context\n\n" + format_snapshot(snapshot)
        prefs = snapshot.preferences or preferences
    else:
        body = sections.NO_TANK_PLACEHOLDER
        prefs = preferences
    rendered_prefs = format_preferences(prefs)
    if rendered_prefs:
        body += "\n\n" + rendered_prefs
    return body


def compose_document(
        snapshot: Optional[ContextSnapshot],
        skill_level: Union[SkillLevel, str, None] = None,
        *,
        today: Optional[date] = None,
        preferences: Optional[UserPreferences] = None,
) -> PromptDocument:
    """
    Pure: the same (snapshot, skill level, date) always yields the same document.
    `preferences` is only consulted when the snapshot carries none (general chat without a tank).
    """
    level = SkillLevel.coerce(skill_level)
    day = today or utc_today()
    return PromptDocument(sections=(
        PromptSection("persona", sections.PERSONA),
        PromptSection("skill_level", sections.SKILL_LEVEL_BLOCKS[level]),
        PromptSection("context", _context_section(snapshot, preferences)),
        PromptSection("action_grammar", sections.block_grammar() + "\n\n" + sections.action_grammar()),
        PromptSection("proactive_alerts", sections.proactive_alert_grammar()),
        PromptSection("date", sections.date_stamp(day.isoformat())),
    ))


def compose(
        snapshot: Optional[ContextSnapshot],
        skill_level: Union[SkillLevel, str, None] = None,
        *,
        today: Optional[date] = None,
        preferences: Optional[UserPreferences] = None,
) -> str:
    return compose_document(snapshot, skill_level, today=today, preferences=preferences).render()


def summarizer_prompt() -> str:
    return sections.SUMMARIZER_PROMPT
