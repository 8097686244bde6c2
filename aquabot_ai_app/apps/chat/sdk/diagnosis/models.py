# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/diagnosis/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from aquabot_ai_app.infra.llm.llm_data_model import TokenUsage


class DiagnosisKind(str, Enum):
    species_id = "species_id"
    disease = "disease"
    both = "both"

    @property
    def wants_species(self) -> bool:
        return self in (DiagnosisKind.species_id, DiagnosisKind.both)

    @property
    def wants_disease(self) -> bool:
        return self in (DiagnosisKind.disease, DiagnosisKind.both)


CONFIDENCE_LEVELS = ("high", "medium", "low")
SEVERITY_LEVELS = ("minor", "moderate", "severe")


def validate_confidence(value: Any) -> str:
    return value if value in CONFIDENCE_LEVELS else "medium"


def validate_severity(value: Any) -> str:
    return value if value in SEVERITY_LEVELS else "moderate"


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """png stays png; every other image type is sent as jpeg."""
    return "image/png" if (mime_type or "").lower().strip() == "image/png" else "image/jpeg"


@dataclass
class SpeciesResult:
    name: str
    confidence: str = "medium"
    scientific_name: Optional[str] = None
    care_level: Optional[str] = None
    min_tank_size: Optional[Any] = None
    temperament: Optional[str] = None
    care_summary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "name": self.name,
            "scientificName": self.scientific_name,
            "confidence": self.confidence,
            "careLevel": self.care_level,
            "minTankSize": self.min_tank_size,
            "temperament": self.temperament,
            "careSummary": self.care_summary,
        }
        return {k: v for k, v in out.items() if v is not None}


@dataclass
class DiseaseResult:
    diagnosis: str
    confidence: str = "medium"
    severity: str = "moderate"
    symptoms: List[str] = field(default_factory=list)
    treatment_steps: List[str] = field(default_factory=list)
    medication_name: Optional[str] = None
    medication_dosage: Optional[str] = None
    treatment_duration: Optional[str] = None
    medication_warnings: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "diagnosis": self.diagnosis,
            "confidence": self.confidence,
            "severity": self.severity,
            "symptoms": list(self.symptoms),
            "treatmentSteps": list(self.treatment_steps),
            "medicationName": self.medication_name,
            "medicationDosage": self.medication_dosage,
            "treatmentDuration": self.treatment_duration,
            "medicationWarnings": self.medication_warnings,
        }
        return {k: v for k, v in out.items() if v is not None}


@dataclass
class DiagnosisResult:
    species_result: Optional[SpeciesResult] = None
    disease_result: Optional[DiseaseResult] = None
    confidence: str = "medium"
    raw_response: str = ""
    usage: Optional[TokenUsage] = None
    # True when the reply body could not be read and a fallback was substituted
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"confidence": self.confidence}
        if self.species_result:
            out["speciesResult"] = self.species_result.to_dict()
        if self.disease_result:
            out["diseaseResult"] = self.disease_result.to_dict()
        if self.usage:
            out["usage"] = self.usage.to_dict()
        return out
