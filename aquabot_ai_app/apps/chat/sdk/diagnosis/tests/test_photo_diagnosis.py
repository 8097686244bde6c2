# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

import pytest

from aquabot_ai_app.apps.chat.sdk.context.tests.helpers import make_snapshot
from aquabot_ai_app.apps.chat.sdk.diagnosis.cycle import PhotoDiagnosisCycle, parse_diagnosis_reply
from aquabot_ai_app.apps.chat.sdk.diagnosis.models import DiagnosisKind, normalize_mime_type
from aquabot_ai_app.apps.chat.sdk.diagnosis.tests.helpers import RecordedSleep, ScriptedVision
from aquabot_ai_app.infra.service_hub.errors import RetryExhaustedError, TransportError

SPECIES_REPLY = """```json
{"speciesResult": {"name": "Betta", "scientificName": "Betta splendens", "confidence": "high",
 "careLevel": "beginner", "minTankSize": 5, "temperament": "semi-aggressive",
 "careSummary": "Keep warm {78-80F}."}}
```"""


@pytest.mark.asyncio
async def test_retries_transport_failures_with_backoff():
    vision = ScriptedVision(TransportError("503"), TransportError("503"), SPECIES_REPLY)
    sleep = RecordedSleep()
    cycle = PhotoDiagnosisCycle(vision, sleep=sleep)

    result = await cycle.diagnose(b"img", "image/webp", DiagnosisKind.species_id, make_snapshot())

    assert len(vision.requests) == 3
    assert sleep.waits == [1.0, 2.0]
    assert sum(sleep.waits) >= 3
    assert result.species_result.name == "Betta"
    assert result.species_result.min_tank_size == 5
    assert result.confidence == "high"
    assert result.usage.total_tokens == 150
    req = vision.requests[0]
    assert req.image.media_type == "image/jpeg"
    assert "Tank Volume: 29 gallons" in req.system


@pytest.mark.asyncio
async def test_exhaustion_raises_with_last_cause():
    vision = ScriptedVision(TransportError("a"), TransportError("b"), TransportError("c", reason="rate_limit"))
    with pytest.raises(RetryExhaustedError) as ei:
        await PhotoDiagnosisCycle(vision, sleep=RecordedSleep()).diagnose(b"img", "image/png", "disease")
    assert ei.value.attempts == 3
    assert ei.value.last_cause.is_rate_limited


@pytest.mark.asyncio
async def test_non_transport_errors_are_not_retried():
    vision = ScriptedVision(ValueError("bad request shape"), SPECIES_REPLY)
    with pytest.raises(ValueError):
        await PhotoDiagnosisCycle(vision, sleep=RecordedSleep()).diagnose(b"img", "image/png", "species_id")
    assert len(vision.requests) == 1


@pytest.mark.asyncio
async def test_unreadable_body_falls_back():
    vision = ScriptedVision("Sorry, I can't see a fish here.")
    result = await PhotoDiagnosisCycle(vision, sleep=RecordedSleep()).diagnose(b"img", "image/png", "species_id")
    assert result.fallback
    assert result.species_result.name == "Unable to identify"
    assert result.confidence == "low"


def test_disease_fallback_and_healthy_default():
    fb = parse_diagnosis_reply("{ truncated", DiagnosisKind.disease)
    assert fb.disease_result.diagnosis == "Analysis inconclusive"
    assert fb.disease_result.severity == "minor"
    assert fb.species_result is None

    healthy = parse_diagnosis_reply('{"note": "fish looks fine"}', "disease")
    assert healthy.disease_result.diagnosis == "No visible disease or condition detected"
    assert healthy.disease_result.treatment_steps == ["Continue regular monitoring", "Maintain good water quality"]


def test_confidence_and_severity_coercion():
    raw = ('Result: {"speciesResult": {"confidence": "certain"},'
           ' "diseaseResult": {"diagnosis": "Ich", "severity": "catastrophic", "confidence": "HIGH",'
           ' "symptoms": ["white spots", 3], "treatmentSteps": "not a list"}}')
    result = parse_diagnosis_reply(raw, DiagnosisKind.both)
    assert result.species_result.name == "Unknown Species"
    assert result.species_result.confidence == "medium"
    assert result.disease_result.severity == "moderate"
    assert result.disease_result.confidence == "medium"
    assert result.disease_result.symptoms == ["white spots", "3"]
    assert result.disease_result.treatment_steps == []
    wire = result.to_dict()
    assert wire["speciesResult"]["name"] == "Unknown Species"
    assert wire["diseaseResult"]["diagnosis"] == "Ich"


def test_mime_normalization():
    assert normalize_mime_type("image/png") == "image/png"
    assert normalize_mime_type("IMAGE/PNG") == "image/png"
    assert normalize_mime_type("image/heic") == "image/jpeg"
    assert normalize_mime_type(None) == "image/jpeg"


def test_both_with_no_results_falls_back():
    result = parse_diagnosis_reply("{}", DiagnosisKind.both)
    assert result.fallback
    assert result.species_result.name == "Unable to identify"
    assert result.raw_response == "{}"


def test_deeply_nested_reply_falls_back():
    raw = '{"speciesResult": ' + "[" * 100000 + "]" * 100000 + "}"
    result = parse_diagnosis_reply(raw, "species_id")
    assert result.fallback
    assert result.confidence == "low"
