"""
Oracle boundary: the generative-AI collaborator.

Components:
- Oracle: abstract port
- RetryingOracle: quota-aware retry wrapper
- Schemas: validated response types
"""

from .base import Oracle, RetryingOracle
from .retry import call_with_retry, is_quota_error
from .schemas import (
    ExamExercise,
    GradingResponse,
    PronunciationEvaluation,
    SentenceEvaluation,
    TranslationResponse,
    parse_exercises,
    parse_response,
)

__all__ = [
    "Oracle",
    "RetryingOracle",
    "call_with_retry",
    "is_quota_error",
    "ExamExercise",
    "GradingResponse",
    "PronunciationEvaluation",
    "SentenceEvaluation",
    "TranslationResponse",
    "parse_exercises",
    "parse_response",
]
