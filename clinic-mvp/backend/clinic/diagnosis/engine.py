"""
Diagnosis suggestion engine.

Pure function over the static table in ``table.py``: no I/O, no model calls.
Only the first affected body part selects the differential list; pain level
and symptom count nudge confidence up, capped at ``CONFIDENCE_CAP``.
"""

from typing import Optional, Sequence

from .table import DEFAULT_DIAGNOSES, DIAGNOSIS_TABLE
from .types import DiagnosisCandidate, DiagnosisSuggestion

CONFIDENCE_CAP = 0.95
HIGH_PAIN_THRESHOLD = 7
HIGH_PAIN_MULTIPLIER = 1.10
MANY_SYMPTOMS_THRESHOLD = 3
MANY_SYMPTOMS_MULTIPLIER = 1.05
MAX_SUGGESTIONS = 4


def select_candidates(affected_body_parts: Optional[Sequence[str]]) -> list[DiagnosisCandidate]:
    if not affected_body_parts:
        return DEFAULT_DIAGNOSES
    return DIAGNOSIS_TABLE.get(affected_body_parts[0], DEFAULT_DIAGNOSES)


def adjust_confidence(base_confidence: float, pain_level: Optional[int], symptom_count: int) -> float:
    confidence = base_confidence
    if pain_level is not None and pain_level >= HIGH_PAIN_THRESHOLD:
        confidence = min(confidence * HIGH_PAIN_MULTIPLIER, CONFIDENCE_CAP)
    if symptom_count >= MANY_SYMPTOMS_THRESHOLD:
        confidence = min(confidence * MANY_SYMPTOMS_MULTIPLIER, CONFIDENCE_CAP)
    return round(confidence, 2)


def build_reasoning(rank: int, affected_body_parts, pain_level, symptoms) -> str:
    if rank == 0:
        body_parts = ', '.join(affected_body_parts or [])
        leading_symptoms = ' and '.join((symptoms or [])[:2])
        return (
            f"Primary diagnosis based on {body_parts} involvement, pain level {pain_level}/10, "
            f"and symptom presentation including {leading_symptoms}"
        )
    if rank == 1:
        return 'Secondary consideration due to similar symptom overlap and anatomical proximity'
    if rank == 2:
        return 'Differential diagnosis to rule out based on mechanism of injury'
    return 'Less likely but possible given the clinical presentation'


def suggest_diagnoses(
    symptoms: Optional[Sequence[str]],
    affected_body_parts: Optional[Sequence[str]],
    pain_level: Optional[int],
    mechanism_of_injury: Optional[str] = None,
) -> list[DiagnosisSuggestion]:
    """
    Return the ranked differential for an intake.

    Table order is kept as-is after adjustment: the cap can make neighbouring
    ranks equal, and equal ranks are not re-sorted.

    ``mechanism_of_injury`` is accepted for the call signature the intake
    flow uses; it does not change the scores or the reasoning text.
    """
    symptom_count = len(symptoms or [])
    candidates = select_candidates(affected_body_parts)

    suggestions = []
    for rank, candidate in enumerate(candidates[:MAX_SUGGESTIONS]):
        suggestions.append(DiagnosisSuggestion(
            name=candidate.name,
            icd10=candidate.icd10,
            base_confidence=candidate.base_confidence,
            confidence=adjust_confidence(candidate.base_confidence, pain_level, symptom_count),
            reasoning=build_reasoning(rank, affected_body_parts, pain_level, symptoms),
            cpt_codes=list(candidate.cpt_codes),
        ))
    return suggestions
