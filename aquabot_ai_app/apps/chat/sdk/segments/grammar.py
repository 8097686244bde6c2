# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/segments/grammar.py
"""
Fenced-block wire grammar shared by the prompt composer (which teaches it to the model)
and the segment parser (which reads it back).

    ```<kind>
    <one JSON value>
    ```

Bump BLOCK_GRAMMAR_VERSION whenever a kind or a payload shape changes.
"""
from enum import Enum
from typing import Any, Dict, FrozenSet

BLOCK_GRAMMAR_VERSION = "1"


class BlockKind(str, Enum):
    species_card = "species-card"
    parameter_alert = "parameter-alert"
    action_buttons = "action-buttons"
    action_confirmation = "action-confirmation"
    proactive_alert = "proactive-alert"


SUPPORTED_KINDS: FrozenSet[str] = frozenset(k.value for k in BlockKind)

# Tags the product knows but this renderer does not turn into widgets.
# Their contents are shown as prose instead of being silently dropped.
UNSUPPORTED_WIDGET_KINDS: FrozenSet[str] = frozenset({
    "photo-diagnosis",
    "water-change-calculator",
    "quarantine-checklist",
    "parameter-troubleshooting",
})

STRUCTURED_KINDS: FrozenSet[str] = SUPPORTED_KINDS | UNSUPPORTED_WIDGET_KINDS

# Canonical example payloads, rendered into the system prompt.
EXAMPLES: Dict[BlockKind, Any] = {
    BlockKind.species_card: {
        "name": "Neon Tetra",
        "scientificName": "Paracheirodon innesi",
        "imageUrl": None,
        "stats": {
            "minTankSize": "10 gallons",
            "temperament": "Peaceful",
            "careLevel": "Easy",
            "temperature": "72-80°F",
            "pH": "6.0-7.0",
            "maxSize": "1.5 inches",
        },
        "compatibility": "good",
        "compatibilityMessage": "Compatible with your current community fish.",
    },
    BlockKind.parameter_alert: {
        "parameter": "Ammonia",
        "currentValue": 0.5,
        "unit": "ppm",
        "status": "warning",
        "trend": [0, 0.25, 0.5],
        "recommendation": "Do a 25% water change and test again tomorrow.",
    },
    BlockKind.action_buttons: [
        {"label": "Log water test", "action": "log_parameters"},
        {"label": "Schedule water change", "action": "schedule_maintenance"},
    ],
    BlockKind.proactive_alert: {
        "id": "alert-nitrate-1",
        "parameter": "Nitrate",
        "current_value": 35,
        "unit": "ppm",
        "trend_direction": "increasing",
        "projection_text": "At this rate nitrate will pass 40 ppm within 3 days.",
        "likely_cause": "Overfeeding or a missed water change",
        "suggested_action": "Do a 30% water change this week.",
        "severity": "warning",
    },
}

ACTION_EXAMPLES: Dict[str, Dict[str, Any]] = {
    "log_parameters": {
        "type": "log_parameters",
        "description": "Log water test: pH 7.2, ammonia 0 ppm, nitrate 20 ppm",
        "payload": {"ph": 7.2, "ammonia": 0, "nitrate": 20},
    },
    "add_livestock": {
        "type": "add_livestock",
        "description": "Add 6 Neon Tetras",
        "payload": {"species_name": "Neon Tetra", "quantity": 6},
    },
    "schedule_maintenance": {
        "type": "schedule_maintenance",
        "description": "Schedule a weekly 25% water change starting Saturday",
        "payload": {"task_type": "water_change", "title": "25% water change",
                    "due_date": "2025-01-18", "frequency": "weekly"},
    },
    "complete_maintenance": {
        "type": "complete_maintenance",
        "description": "Mark today's water change as done",
        "payload": {"task_id": "<task id>", "notes": "Changed 25%"},
    },
}
