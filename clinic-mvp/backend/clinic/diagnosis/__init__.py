from .engine import suggest_diagnoses
from .types import DiagnosisSuggestion

__all__ = ['suggest_diagnoses', 'DiagnosisSuggestion']
