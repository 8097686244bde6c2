# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/sdk/prompts/diagnosis.py
from typing import List, Optional

from aquabot_ai_app.apps.chat.sdk.context.snapshot import ContextSnapshot
from aquabot_ai_app.apps.chat.sdk.prompts.context_format import format_reading
from aquabot_ai_app.apps.chat.sdk.util import fmt_date, fmt_num

_TASK_WORDS = {
    "species_id": "species identification",
    "disease": "disease diagnosis",
    "both": "species identification AND disease diagnosis",
}

_SPECIES_SHAPE = """### For Species Identification:
{
  "speciesResult": {
    "name": "Common Name (e.g., Neon Tetra)",
    "scientificName": "Scientific name (e.g., Paracheirodon innesi)",
    "confidence": "high" | "medium" | "low",
    "careLevel": "beginner" | "intermediate" | "advanced",
    "minTankSize": number (in gallons),
    "temperament": "peaceful" | "semi-aggressive" | "aggressive",
    "careSummary": "Brief 2-3 sentence care overview"
  }
}"""

_DISEASE_SHAPE = """### For Disease Diagnosis:
{
  "diseaseResult": {
    "diagnosis": "Disease/condition name (e.g., Ich, Fin Rot)",
    "confidence": "high" | "medium" | "low",
    "severity": "minor" | "moderate" | "severe",
    "symptoms": ["List", "of", "visible", "symptoms"],
    "treatmentSteps": ["Step 1", "Step 2", "Step 3"],
    "medicationName": "Recommended medication (if applicable)",
    "medicationDosage": "Dosage adjusted for tank volume",
    "treatmentDuration": "Expected treatment duration",
    "medicationWarnings": ["Warning about invertebrates", "Other warnings"]
  }
}"""

_BOTH_SHAPE = """### For Both (Combined Response):
{
  "speciesResult": { ... },
  "diseaseResult": { ... }
}
Include diseaseResult only if a disease or issue is detected."""

_GUIDELINES = """## Guidelines

### Species Identification:
- Focus on physical characteristics visible in the photo
- Consider coloration, fin shape, body shape, and markings
- If multiple fish are visible, identify the most prominent one
- If unsure, indicate "medium" or "low" confidence

### Disease Diagnosis:
- Look for visible symptoms: white spots, fin damage, color changes, swelling
- Consider the tank context (parameters, livestock) when assessing
- For treatment, ALWAYS personalize dosage based on the tank volume provided
- ALWAYS warn about medication interactions with invertebrates, scaleless fish, or plants
- If no disease is visible, set confidence to "low" and note the fish appears healthy

### Confidence Levels:
- "high": Clear photo, obvious characteristics, highly confident
- "medium": Somewhat unclear or ambiguous, reasonable guess
- "low": Poor photo quality, obscured subject, or uncertain identification

### Safety:
- ALWAYS include the disclaimer about consulting a veterinary professional for serious conditions
- Never recommend medications that could harm other tank inhabitants without warning
- If in doubt, recommend monitoring and retesting before aggressive treatment"""


def _tank_section(snapshot: ContextSnapshot) -> str:
    tank = snapshot.tank
    volume = fmt_num(tank.volume_gallons) if tank.volume_gallons is not None else "unknown"
    lines: List[str] = [
        "## Tank Context (Use for Personalized Treatment)",
        f"- Tank Name: {tank.name}",
        f"- Tank Type: {tank.type}",
        f"- Tank Volume: {volume} gallons",
    ]
    if tank.setup_date:
        lines.append(f"- Setup Date: {fmt_date(tank.setup_date)}")

    lines += ["", "### Current Livestock:"]
    if snapshot.livestock:
        for l in snapshot.livestock:
            species = f" ({l.species})" if l.species else ""
            lines.append(f"- {l.quantity}x {l.name}{species}")
    else:
        lines.append("- No livestock recorded")

    lines += ["", "### Latest Water Parameters:"]
    latest = snapshot.latest_reading
    rendered = format_reading(latest) if latest else ""
    lines.append(f"- {rendered}" if rendered else "- No parameters recorded")

    lines += [
        "",
        "### Treatment Personalization:",
        f"- Calculate medication dosing for exactly {volume} gallons",
        "- Consider existing livestock when recommending treatment",
        "- Flag any medications unsafe for current inhabitants",
    ]
    return "\n".join(lines)


def diagnosis_system_prompt(kind: str, snapshot: Optional[ContextSnapshot]) -> str:
    task = _TASK_WORDS.get(kind, _TASK_WORDS["both"])
    parts = [
        "You are AquaBot, an expert aquarium AI assistant specializing in species identification "
        "and disease diagnosis.",
        f"## Your Task\nAnalyze the provided aquarium photo and provide a detailed {task}.",
        "## Response Format\nYou MUST respond with valid JSON in the following format. "
        "Do not include any text before or after the JSON.",
    ]
    if kind in ("species_id", "both"):
        parts.append(_SPECIES_SHAPE)
    if kind in ("disease", "both"):
        parts.append(_DISEASE_SHAPE)
    if kind == "both":
        parts.append(_BOTH_SHAPE)
    parts.append(_GUIDELINES)
    if snapshot is not None:
        parts.append(_tank_section(snapshot))
    return "\n\n".join(parts)


def diagnosis_user_text(kind: str) -> str:
    task = _TASK_WORDS.get(kind, _TASK_WORDS["both"]).replace("AND", "and")
    return f"Please analyze this aquarium photo and provide a {task}. Respond with JSON only."
