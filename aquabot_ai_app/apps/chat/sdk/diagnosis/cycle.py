# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/diagnosis/cycle.py
"""
Photo diagnosis: one vision call, retried on transport failure, and a forgiving reader
for the JSON the model sends back.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot
from aquabot_ai_app.apps.chat.sdk.diagnosis.models import (
    DiagnosisKind, DiagnosisResult, SpeciesResult, DiseaseResult,
    validate_confidence, validate_severity, normalize_mime_type,
)
from aquabot_ai_app.apps.chat.sdk.prompts.diagnosis import diagnosis_system_prompt, diagnosis_user_text
from aquabot_ai_app.infra.llm.llm_data_model import ImagePart, Message, ModelRequest
from aquabot_ai_app.infra.llm.util import (
    strip_code_fences, find_balanced_json_object, retry_with_exponential_backoff,
)
from aquabot_ai_app.infra.llm.vision import VisionModel
from aquabot_ai_app.infra.service_hub.errors import TransportError

logger = logging.getLogger(__name__)

NO_DISEASE = "No visible disease or condition detected"


def _str_or_none(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip():
        return v.strip()
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


def _str_list(v: Any) -> List[str]:
    if not isinstance(v, list):
        return []
    return [s for s in (_str_or_none(x) for x in v) if s]


def _species(raw: Any) -> Optional[SpeciesResult]:
    if not isinstance(raw, dict):
        return None
    min_size = raw.get("minTankSize")
    return SpeciesResult(
        name=_str_or_none(raw.get("name")) or "Unknown Species",
        scientific_name=_str_or_none(raw.get("scientificName")),
        confidence=validate_confidence(raw.get("confidence")),
        care_level=_str_or_none(raw.get("careLevel")),
        min_tank_size=min_size if isinstance(min_size, (int, float, str)) and not isinstance(min_size, bool) else None,
        temperament=_str_or_none(raw.get("temperament")),
        care_summary=_str_or_none(raw.get("careSummary")),
    )


def _disease(raw: Any) -> Optional[DiseaseResult]:
    if not isinstance(raw, dict):
        return None
    warnings = raw.get("medicationWarnings")
    return DiseaseResult(
        diagnosis=_str_or_none(raw.get("diagnosis")) or "Unknown Condition",
        confidence=validate_confidence(raw.get("confidence")),
        severity=validate_severity(raw.get("severity")),
        symptoms=_str_list(raw.get("symptoms")),
        treatment_steps=_str_list(raw.get("treatmentSteps")),
        medication_name=_str_or_none(raw.get("medicationName")),
        medication_dosage=_str_or_none(raw.get("medicationDosage")),
        treatment_duration=_str_or_none(raw.get("treatmentDuration")),
        medication_warnings=_str_list(warnings) if isinstance(warnings, list) else None,
    )


def fallback_result(kind: DiagnosisKind) -> DiagnosisResult:
    if kind.wants_species:
        return DiagnosisResult(
            species_result=SpeciesResult(
                name="Unable to identify",
                confidence="low",
                care_summary="The AI was unable to parse the identification results. "
                             "Please try again with a clearer photo.",
            ),
            confidence="low",
            fallback=True,
        )
    return DiagnosisResult(
        disease_result=DiseaseResult(
            diagnosis="Analysis inconclusive",
            confidence="low",
            severity="minor",
            treatment_steps=["Please try again with a clearer, well-lit photo"],
        ),
        confidence="low",
        fallback=True,
    )


def parse_diagnosis_reply(raw: str, kind: Union[DiagnosisKind, str]) -> DiagnosisResult:
    """
    Read the model's reply. Never raises: text with no readable JSON object yields the
    low-confidence fallback for the requested kind.
    """
    kind = DiagnosisKind(kind)
    candidate = find_balanced_json_object(strip_code_fences(raw or ""))
    parsed: Any = None
    if candidate is not None:
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError):
            parsed = None
    if not isinstance(parsed, dict):
        logger.warning("Could not read diagnosis reply as JSON (%d chars), using fallback", len(raw or ""))
        result = fallback_result(kind)
        result.raw_response = raw or ""
        return result

    species = _species(parsed.get("speciesResult")) if kind.wants_species else None
    disease = _disease(parsed.get("diseaseResult")) if kind.wants_disease else None

    confidence = "medium"
    if species is not None:
        confidence = species.confidence
    if disease is not None and kind == DiagnosisKind.disease:
        confidence = disease.confidence

    if kind == DiagnosisKind.disease and disease is None:
        disease = DiseaseResult(
            diagnosis=NO_DISEASE,
            confidence="medium",
            severity="minor",
            treatment_steps=["Continue regular monitoring", "Maintain good water quality"],
        )
    if species is None and (kind == DiagnosisKind.species_id or disease is None):
        # nothing usable for what was asked
        result = fallback_result(kind)
        result.raw_response = raw
        return result

    return DiagnosisResult(species_result=species, disease_result=disease,
                           confidence=confidence, raw_response=raw)


class PhotoDiagnosisCycle:
    """
    diagnose(image, mime, kind, snapshot) -> DiagnosisResult

    Up to `max_attempts` calls, waiting backoff, 2*backoff, ... between them.
    Only TransportError is retried; exhaustion raises RetryExhaustedError.
    """

    def __init__(self, model: VisionModel, *, max_attempts: int = 3, backoff_seconds: float = 1.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.model = model
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def build_request(self, image: bytes, mime_type: str, kind: DiagnosisKind,
                      snapshot: Optional[ContextSnapshot]) -> ModelRequest:
        return ModelRequest(
            system=diagnosis_system_prompt(kind.value, snapshot),
            messages=[Message(role="user", content=diagnosis_user_text(kind.value))],
            image=ImagePart(media_type=normalize_mime_type(mime_type), data=image),
            stream=False,
        )

    async def diagnose(self, image: bytes, mime_type: str, kind: Union[DiagnosisKind, str],
                       snapshot: Optional[ContextSnapshot] = None) -> DiagnosisResult:
        kind = DiagnosisKind(kind)
        request = self.build_request(image, mime_type, kind, snapshot)

        text, usage = await retry_with_exponential_backoff(
            lambda: self.model.complete(request),
            initial_delay=self.backoff_seconds,
            exponential_base=2,
            max_attempts=self.max_attempts,
            errors=(TransportError,),
            sleep=self._sleep,
        )
        result = parse_diagnosis_reply(text, kind)
        result.usage = usage
        return result
