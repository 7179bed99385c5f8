"""
Domain models for the GrowFluent scheduler.

Cards and exam reports are immutable snapshots; every scheduling update
returns a new value. ``to_dict``/``from_dict`` produce the camelCase
document shape that the stores persist.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DAY_MS = 86_400_000

# =============================================================================
# Enums
# =============================================================================


class Language(str, Enum):
    """Target languages a card can belong to."""

    ENGLISH = "ENGLISH"
    CATALAN = "CATALAN"
    FRENCH = "FRENCH"


class CardStatus(str, Enum):
    """Derived memory tag."""

    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


class ErrorType(str, Enum):
    """How a wrong exam answer went wrong."""

    TRANSLATION = "translation"
    CONTEXT = "context"
    PRONUNCIATION = "pronunciation"
    GRAMMAR = "grammar"
    SPELLING = "spelling"


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """Wall clock in ms epoch. The default clock; tests inject their own."""
    return int(time.time() * 1000)


# =============================================================================
# Cards
# =============================================================================


@dataclass(frozen=True)
class SentenceEntry:
    """A sentence the learner wrote with a card's phrase."""

    id: str
    user_sentence: str
    feedback: str
    date: int
    is_correct: bool
    improved_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "userSentence": self.user_sentence,
            "feedback": self.feedback,
            "date": self.date,
            "isCorrect": self.is_correct,
        }
        if self.improved_version is not None:
            data["improvedVersion"] = self.improved_version
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SentenceEntry:
        return cls(
            id=data["id"],
            user_sentence=data.get("userSentence", ""),
            feedback=data.get("feedback", ""),
            date=int(data.get("date", 0)),
            is_correct=bool(data.get("isCorrect", False)),
            improved_version=data.get("improvedVersion"),
        )


_CARD_KEYS = {
    "id",
    "phrase",
    "language",
    "createdAt",
    "nextReviewAt",
    "lastInterval",
    "repetitionCount",
    "easinessFactor",
    "status",
    "timesReviewed",
    "successCount",
    "failureCount",
    "translation",
    "lastExamScore",
    "pronunciationHistory",
    "sentenceHistory",
}


@dataclass(frozen=True)
class Card:
    """
    A flashcard and its SM-2 review state.

    Attributes:
        created_at: Creation time (ms epoch).
        next_review_at: Time at or after which the card is due (ms epoch).
        last_interval: Last computed review interval in days.
        repetition_count: Consecutive correct streak, reset on failure.
        easiness_factor: Interval growth multiplier, kept within [1.3, 3.5].
        enrichment: Oracle-provided extras (explanation, synonyms, ...).
    """

    id: str
    phrase: str
    language: Language
    created_at: int
    next_review_at: int
    last_interval: int = 0
    repetition_count: int = 0
    easiness_factor: float = 2.5
    status: CardStatus = CardStatus.NEW
    times_reviewed: int = 0
    success_count: int = 0
    failure_count: int = 0
    translation: str = ""
    enrichment: dict[str, Any] = field(default_factory=dict)
    last_exam_score: float | None = None
    pronunciation_history: tuple[float, ...] = ()
    sentence_history: tuple[SentenceEntry, ...] = ()

    @classmethod
    def create(
        cls,
        phrase: str,
        language: Language,
        now: int,
        translation: str = "",
        enrichment: dict[str, Any] | None = None,
        card_id: str | None = None,
    ) -> Card:
        """Build a brand-new card that is due immediately."""
        return cls(
            id=card_id or new_id(),
            phrase=phrase,
            language=language,
            created_at=now,
            next_review_at=now,
            translation=translation,
            enrichment=dict(enrichment or {}),
        )

    def is_due(self, now: int) -> bool:
        return now >= self.next_review_at

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.enrichment)
        data.update(
            {
                "id": self.id,
                "phrase": self.phrase,
                "language": self.language.value,
                "createdAt": self.created_at,
                "nextReviewAt": self.next_review_at,
                "lastInterval": self.last_interval,
                "repetitionCount": self.repetition_count,
                "easinessFactor": self.easiness_factor,
                "status": self.status.value,
                "timesReviewed": self.times_reviewed,
                "successCount": self.success_count,
                "failureCount": self.failure_count,
                "translation": self.translation,
                "pronunciationHistory": list(self.pronunciation_history),
                "sentenceHistory": [s.to_dict() for s in self.sentence_history],
            }
        )
        if self.last_exam_score is not None:
            data["lastExamScore"] = self.last_exam_score
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Card:
        created_at = int(data["createdAt"])
        return cls(
            id=data["id"],
            phrase=data.get("phrase", ""),
            language=Language(data["language"]),
            created_at=created_at,
            next_review_at=int(data.get("nextReviewAt", created_at)),
            last_interval=int(data.get("lastInterval", 0)),
            repetition_count=int(data.get("repetitionCount", 0)),
            easiness_factor=float(data.get("easinessFactor", 2.5)),
            status=CardStatus(data.get("status", CardStatus.NEW.value)),
            times_reviewed=int(data.get("timesReviewed", 0)),
            success_count=int(data.get("successCount", 0)),
            failure_count=int(data.get("failureCount", 0)),
            translation=data.get("translation", ""),
            enrichment={k: v for k, v in data.items() if k not in _CARD_KEYS},
            last_exam_score=data.get("lastExamScore"),
            pronunciation_history=tuple(data.get("pronunciationHistory") or ()),
            sentence_history=tuple(
                SentenceEntry.from_dict(s) for s in data.get("sentenceHistory") or ()
            ),
        )


# =============================================================================
# Session Outcomes
# =============================================================================


@dataclass(frozen=True)
class PracticeResult:
    """Outcome of one practice item. Consumed by the aggregator, never stored."""

    card_id: str
    is_correct: bool
    response_time_ms: int
    pronunciation_score: float | None = None


@dataclass(frozen=True)
class ExamQuestionResult:
    """Outcome of one graded exam question."""

    card_id: str
    is_correct: bool
    response_time_ms: int
    question: str = ""
    user_answer: str = ""
    correct_answer: str = ""
    type: str = ""
    error_type: ErrorType | None = None
    explanation: str | None = None
    example: str | None = None
    example_translation: str | None = None
    pronunciation: dict[str, Any] | None = None

    @property
    def pronunciation_score(self) -> float | None:
        if not self.pronunciation:
            return None
        score = self.pronunciation.get("score")
        return float(score) if score is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "cardId": self.card_id,
            "isCorrect": self.is_correct,
            "responseTimeMs": self.response_time_ms,
            "question": self.question,
            "userAnswer": self.user_answer,
            "correctAnswer": self.correct_answer,
            "type": self.type,
        }
        optional = {
            "errorType": self.error_type.value if self.error_type else None,
            "explanation": self.explanation,
            "example": self.example,
            "exampleTranslation": self.example_translation,
            "pronunciation": self.pronunciation,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamQuestionResult:
        error_type = data.get("errorType")
        return cls(
            card_id=data["cardId"],
            is_correct=bool(data["isCorrect"]),
            response_time_ms=int(data.get("responseTimeMs", 0)),
            question=data.get("question", ""),
            user_answer=data.get("userAnswer", ""),
            correct_answer=data.get("correctAnswer", ""),
            type=data.get("type", ""),
            error_type=ErrorType(error_type) if error_type else None,
            explanation=data.get("explanation"),
            example=data.get("example"),
            example_translation=data.get("exampleTranslation"),
            pronunciation=data.get("pronunciation"),
        )


@dataclass(frozen=True)
class ExamReport:
    """Summary of a completed exam. Immutable, appended to history."""

    id: str
    date: int
    language: Language
    total_time_ms: int
    accuracy: float
    speed_score: float
    results: tuple[ExamQuestionResult, ...]
    mastered_ids: tuple[str, ...]
    weak_ids: tuple[str, ...]
    forgotten_ids: tuple[str, ...]
    recommendations: tuple[str, ...]
    pronunciation_avg: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "language": self.language.value,
            "totalTimeMs": self.total_time_ms,
            "accuracy": self.accuracy,
            "speedScore": self.speed_score,
            "results": [r.to_dict() for r in self.results],
            "masteredIds": list(self.mastered_ids),
            "weakIds": list(self.weak_ids),
            "forgottenIds": list(self.forgotten_ids),
            "recommendations": list(self.recommendations),
            "pronunciationAvg": self.pronunciation_avg,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamReport:
        return cls(
            id=data["id"],
            date=int(data["date"]),
            language=Language(data["language"]),
            total_time_ms=int(data.get("totalTimeMs", 0)),
            accuracy=float(data.get("accuracy", 0.0)),
            speed_score=float(data.get("speedScore", 0.0)),
            results=tuple(ExamQuestionResult.from_dict(r) for r in data.get("results", [])),
            mastered_ids=tuple(data.get("masteredIds", [])),
            weak_ids=tuple(data.get("weakIds", [])),
            forgotten_ids=tuple(data.get("forgottenIds", [])),
            recommendations=tuple(data.get("recommendations", [])),
            pronunciation_avg=float(data.get("pronunciationAvg", 0.0)),
        )
