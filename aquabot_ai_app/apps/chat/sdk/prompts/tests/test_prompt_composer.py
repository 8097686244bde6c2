# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

from datetime import date

from aquabot_ai_app.apps.chat.sdk.context.snapshot import SkillLevel, UserPreferences
from aquabot_ai_app.apps.chat.sdk.context.tests.helpers import make_snapshot
from aquabot_ai_app.apps.chat.sdk.prompts import sections
from aquabot_ai_app.apps.chat.sdk.prompts.composer import compose, compose_document
from aquabot_ai_app.apps.chat.sdk.segments.grammar import BlockKind

DAY = date(2025, 1, 11)


def test_compose_is_pure_for_a_fixed_date():
    snap = make_snapshot()
    assert compose(snap, SkillLevel.intermediate, today=DAY) == compose(snap, SkillLevel.intermediate, today=DAY)
    assert compose(snap, today=DAY) != compose(snap, today=date(2025, 1, 12))


def test_section_order():
    doc = compose_document(make_snapshot(), "advanced", today=DAY)
    assert doc.names == ("persona", "skill_level", "context", "action_grammar", "proactive_alerts", "date")
    text = doc.render()
    positions = [text.index(s.text) for s in doc.sections]
    assert positions == sorted(positions)
    assert text.endswith("## Current Date: 2025-01-11")


def test_context_section_renders_snapshot():
    ctx = compose_document(make_snapshot(), today=DAY).section("context").text
    assert "## Tank: Living Room" in ctx
    assert "Ammonia: 0 ppm" in ctx
    assert "Neon Tetra" in ctx
    assert "Weekly water change" in ctx


def test_no_tank_placeholder_with_preferences():
    prefs = UserPreferences(experience_level="first_timer", explanation_depth="brief")
    ctx = compose_document(None, today=DAY, preferences=prefs).section("context").text
    assert ctx.startswith(sections.NO_TANK_PLACEHOLDER)
    assert "First-time aquarium keeper" in ctx
    assert compose_document(None, today=DAY).section("context").text == sections.NO_TANK_PLACEHOLDER


def test_unknown_skill_falls_back_to_beginner():
    doc = compose_document(None, "grandmaster", today=DAY)
    assert doc.section("skill_level").text == sections.SKILL_LEVEL_BLOCKS[SkillLevel.beginner]


def test_grammar_mentions_every_block_kind():
    text = compose(None, today=DAY)
    for kind in BlockKind:
        assert f"```{kind.value}" in text
    for action in ("log_parameters", "add_livestock", "schedule_maintenance", "complete_maintenance"):
        assert action in text
