# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/segments/models.py
"""
Typed renderable units of an assistant reply.

Structured segments validate the JSON carried by their fenced block. Field names are
snake_case in Python and keep the wire (camelCase) names as aliases, so
`model_dump(by_alias=True)` reproduces the payload the model wrote.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aquabot_ai_app.apps.chat.sdk.actions.models import ActionType
from aquabot_ai_app.apps.chat.sdk.segments.grammar import BlockKind


class Status(str, Enum):
    good = "good"
    warning = "warning"
    alert = "alert"


class TrendDirection(str, Enum):
    increasing = "increasing"
    decreasing = "decreasing"
    stable = "stable"
    spiking = "spiking"


class AlertSeverity(str, Enum):
    info = "info"
    warning = "warning"
    alert = "alert"


class _Segment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ClassVar[str] = "text"
    # original text of the fenced block this segment came from, when it came from one
    source: Optional[str] = Field(default=None, exclude=True, repr=False)

    def payload(self) -> Any:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "data": self.payload()}

    def to_source(self) -> str:
        if self.source is not None:
            return self.source
        return f"```{self.kind}\n{json.dumps(self.payload(), ensure_ascii=False)}\n```"

    def same_as(self, other: "_Segment") -> bool:
        """Equivalence ignoring where the segment came from."""
        return type(self) is type(other) and self.to_dict() == other.to_dict()


class TextSegment(_Segment):
    kind: ClassVar[str] = "text"
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind, "content": self.content}

    def to_source(self) -> str:
        return self.source if self.source is not None else self.content


def _stringify(v: Any) -> Any:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return f"{v:g}"
    return v


class SpeciesStats(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_tank_size: str = Field(default="", alias="minTankSize")
    temperament: str = ""
    care_level: str = Field(default="", alias="careLevel")
    temperature: str = ""
    ph: str = Field(default="", alias="pH")
    max_size: str = Field(default="", alias="maxSize")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce(cls, v):
        return _stringify(v)


class SpeciesCardSegment(_Segment):
    kind: ClassVar[str] = BlockKind.species_card.value

    name: str
    scientific_name: str = Field(alias="scientificName")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    stats: SpeciesStats
    compatibility: Status
    compatibility_message: str = Field(alias="compatibilityMessage")


class ParameterAlertSegment(_Segment):
    kind: ClassVar[str] = BlockKind.parameter_alert.value

    parameter: str
    current_value: Union[float, str] = Field(alias="currentValue")
    unit: str = ""
    status: Status
    trend: List[float] = Field(default_factory=list)
    recommendation: str = ""


class ActionButton(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    action: str


class ActionButtonsSegment(_Segment):
    kind: ClassVar[str] = BlockKind.action_buttons.value

    actions: List[ActionButton]

    def payload(self) -> Any:
        return [a.model_dump(mode="json") for a in self.actions]

    @classmethod
    def from_wire(cls, value: Any, source: Optional[str] = None) -> "ActionButtonsSegment":
        return cls.model_validate({"actions": value}).model_copy(update={"source": source})


class ActionConfirmationSegment(_Segment):
    kind: ClassVar[str] = BlockKind.action_confirmation.value

    type: ActionType
    description: str
    payload_data: Dict[str, Any] = Field(default_factory=dict, alias="payload")


class ProactiveAlertSegment(_Segment):
    kind: ClassVar[str] = BlockKind.proactive_alert.value

    id: Optional[str] = None
    parameter: str
    current_value: float
    unit: str = ""
    trend_direction: TrendDirection
    projection_text: str
    likely_cause: Optional[str] = None
    suggested_action: Optional[str] = None
    severity: AlertSeverity


Segment = Union[
    TextSegment,
    SpeciesCardSegment,
    ParameterAlertSegment,
    ActionButtonsSegment,
    ActionConfirmationSegment,
    ProactiveAlertSegment,
]

SEGMENT_TYPES: Dict[str, type] = {
    cls.kind: cls for cls in (
        SpeciesCardSegment,
        ParameterAlertSegment,
        ActionButtonsSegment,
        ActionConfirmationSegment,
        ProactiveAlertSegment,
    )
}
