"""
Spaced-repetition core.

Components:
- MemoryModel: SM-2 variant review scheduling
- SessionSelector: daily, free-practice and exam selection
- ResultAggregator: folds session results into cards and exam reports
- SessionOrchestrator: session state machine
"""

from .aggregator import LearningStatistics, ReportThresholds, ResultAggregator
from .memory_model import MemoryModel, SM2Config, advance, round_half_up
from .models import (
    DAY_MS,
    Card,
    CardStatus,
    ErrorType,
    ExamQuestionResult,
    ExamReport,
    Language,
    PracticeResult,
    SentenceEntry,
)
from .orchestrator import (
    SessionContext,
    SessionItem,
    SessionOrchestrator,
    SessionOutcome,
    SessionState,
    SessionType,
)
from .selector import SelectorConfig, SessionSelector

__all__ = [
    "DAY_MS",
    "Card",
    "CardStatus",
    "ErrorType",
    "ExamQuestionResult",
    "ExamReport",
    "Language",
    "LearningStatistics",
    "MemoryModel",
    "PracticeResult",
    "ReportThresholds",
    "ResultAggregator",
    "SM2Config",
    "SelectorConfig",
    "SentenceEntry",
    "SessionContext",
    "SessionItem",
    "SessionOrchestrator",
    "SessionOutcome",
    "SessionSelector",
    "SessionState",
    "SessionType",
    "advance",
    "round_half_up",
]
