# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/actions/models.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Optional


class ActionType(str, Enum):
    log_parameters = "log_parameters"
    add_livestock = "add_livestock"
    schedule_maintenance = "schedule_maintenance"
    complete_maintenance = "complete_maintenance"


class ProposalState(str, Enum):
    proposed = "proposed"
    executing = "executing"
    confirmed = "confirmed"
    cancelled = "cancelled"


@dataclass
class ActionProposal:
    """A model-suggested mutation waiting for the user's decision. Never executed on its own."""
    type: ActionType
    description: str
    payload: Dict[str, Any] = field(default_factory=dict)
    tank_id: Optional[str] = None
    state: ProposalState = ProposalState.proposed

    @property
    def is_pending(self) -> bool:
        return self.state in (ProposalState.proposed, ProposalState.executing)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "payload": dict(self.payload),
            "tank_id": self.tank_id,
            "state": self.state.value,
        }


@dataclass
class MutationResult:
    success: bool
    message: str = ""
    code: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


TASK_TYPES = ("water_change", "filter_cleaning", "feeding", "dosing",
              "equipment_maintenance", "water_testing", "custom")
FREQUENCIES = ("once", "daily", "weekly", "biweekly", "monthly", "custom")

_TASK_TYPE_ALIASES = {
    "water change": "water_change",
    "waterchange": "water_change",
    "filter clean": "filter_cleaning",
    "filter cleaning": "filter_cleaning",
    "filterclean": "filter_cleaning",
    "feed": "feeding",
    "dose": "dosing",
    "equipment maintenance": "equipment_maintenance",
    "equipment": "equipment_maintenance",
    "water test": "water_testing",
    "water testing": "water_testing",
    "test water": "water_testing",
}

_FREQUENCY_ALIASES = {
    "every day": "daily",
    "everyday": "daily",
    "every week": "weekly",
    "everyweek": "weekly",
    "every two weeks": "biweekly",
    "bi-weekly": "biweekly",
    "every month": "monthly",
    "one time": "once",
    "one-time": "once",
}

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_IN_DAYS = re.compile(r"^in\s+(\d+)\s+days?$")
_NEXT_DAY = re.compile(r"^next\s+(" + "|".join(_WEEKDAYS) + r")$")


def _resolve_due_date(raw: str, today: date) -> str:
    s = raw.lower().strip()
    if s == "today":
        return today.isoformat()
    if s == "tomorrow":
        return (today + timedelta(days=1)).isoformat()
    m = _IN_DAYS.match(s)
    if m:
        return (today + timedelta(days=int(m.group(1)))).isoformat()
    m = _NEXT_DAY.match(s)
    if m:
        target = _WEEKDAYS.index(m.group(1))
        days_until = (target - today.weekday()) % 7 or 7
        return (today + timedelta(days=days_until)).isoformat()
    # leave as-is; the endpoint validates
    return raw


def normalize_action_payload(action: ActionType, payload: Dict[str, Any], *, today: date) -> Dict[str, Any]:
    """
    Clean up model-written payloads before dispatch: free-text task types and frequencies
    mapped onto the known enums, relative due dates ('tomorrow', 'in 3 days', 'next friday')
    resolved against `today`.
    """
    out = dict(payload or {})
    if action == ActionType.schedule_maintenance and out.get("task_type"):
        raw = str(out["task_type"]).lower().strip()
        out["task_type"] = _TASK_TYPE_ALIASES.get(raw) or re.sub(r"\s+", "_", raw)
    if out.get("frequency"):
        raw = str(out["frequency"]).lower().strip()
        out["frequency"] = _FREQUENCY_ALIASES.get(raw, raw)
    elif action == ActionType.schedule_maintenance:
        out["frequency"] = "once"
    if out.get("due_date"):
        out["due_date"] = _resolve_due_date(str(out["due_date"]), today)
    if action == ActionType.add_livestock and "quantity" not in out:
        out["quantity"] = 1
    return out
