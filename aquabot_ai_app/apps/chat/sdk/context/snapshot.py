# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/context/snapshot.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SkillLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"

    @classmethod
    def coerce(cls, value: object) -> "SkillLevel":
        """Unknown or missing tags fall back to beginner."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.beginner


# Reading keys in display order
PARAMETER_KEYS: Tuple[str, ...] = ("ph", "ammonia", "nitrite", "nitrate", "temperature", "salinity")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class TankInfo(_Frozen):
    id: str
    name: str
    type: str = "freshwater"
    volume_gallons: Optional[float] = None
    length_inches: Optional[float] = None
    width_inches: Optional[float] = None
    height_inches: Optional[float] = None
    substrate: Optional[str] = None
    setup_date: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def dimensions(self) -> Optional[str]:
        """'L" x W" x H"' only when all three measurements are known."""
        dims = (self.length_inches, self.width_inches, self.height_inches)
        if any(d is None or d <= 0 for d in dims):
            return None
        return " x ".join(f'{d:g}"' for d in dims)


class ParameterReading(_Frozen):
    """Sparse: absent keys were not measured. A stored 0 is a real value."""
    measured_at: Optional[datetime] = None
    values: Dict[str, float] = Field(default_factory=dict)

    def get(self, key: str) -> Optional[float]:
        return self.values.get(key)


class LivestockEntry(_Frozen):
    name: str = "Unknown"
    species: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    date_added: Optional[datetime] = None


class MaintenanceTask(_Frozen):
    type: str
    title: str
    next_due: Optional[datetime] = None
    last_completed: Optional[datetime] = None


class UserProfile(_Frozen):
    skill_level: SkillLevel = SkillLevel.beginner
    volume_unit: str = "gallons"
    temperature_unit: str = "fahrenheit"


class UserPreferences(_Frozen):
    experience_level: Optional[str] = None
    years_in_hobby: Optional[int] = None
    previous_tank_types: List[str] = Field(default_factory=list)
    current_situation: Optional[str] = None
    primary_goal: Optional[str] = None
    motivation: Optional[str] = None
    explanation_depth: str = "moderate"
    wants_scientific_names: bool = False
    communication_style: str = "friendly"
    current_challenges: List[str] = Field(default_factory=list)
    avoided_topics: List[str] = Field(default_factory=list)
    learned_facts: List[str] = Field(default_factory=list)
    interaction_summary: Optional[str] = None
    onboarding_complete: bool = False

    def summary(self) -> str:
        """Short tag line for logs."""
        parts = []
        if self.experience_level:
            parts.append(f"exp:{self.experience_level}")
        if self.explanation_depth:
            parts.append(f"depth:{self.explanation_depth}")
        if self.onboarding_complete:
            parts.append("onboarded")
        return ", ".join(parts) if parts else "Preferences set but minimal"


class ContextSnapshot(_Frozen):
    """
    Everything the composer knows about one tank and its owner, captured at request time.
    Built fresh per request; never mutated afterwards.
    """
    tank: TankInfo
    parameters: Tuple[ParameterReading, ...] = ()
    livestock: Tuple[LivestockEntry, ...] = ()
    maintenance: Tuple[MaintenanceTask, ...] = ()
    profile: UserProfile = Field(default_factory=UserProfile)
    preferences: Optional[UserPreferences] = None

    @property
    def latest_reading(self) -> Optional[ParameterReading]:
        return self.parameters[0] if self.parameters else None

    def trend(self, key: str) -> List[float]:
        """Values of one parameter, oldest first, skipping readings that lack it."""
        return [r.values[key] for r in reversed(self.parameters) if key in r.values]
