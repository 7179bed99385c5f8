"""
Result Aggregation.

Folds finished sessions back into card state and summarizes exams:
- Practice results -> MemoryModel updates
- Exam results -> ExamReport (accuracy, speed, categorized ids)
- Exam history -> LearningStatistics
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence

from loguru import logger

from .memory_model import MemoryModel, round_half_up
from .models import (
    Card,
    CardStatus,
    ExamQuestionResult,
    ExamReport,
    Language,
    PracticeResult,
    SentenceEntry,
    new_id,
)

# =============================================================================
# Thresholds
# =============================================================================


@dataclass(frozen=True)
class ReportThresholds:
    """Response-time and score cut-offs for exam reports."""

    mastered_max_ms: int = 6000  # Correct and faster than this
    weak_min_ms: int = 15000  # Slower than this is weak even if correct
    forgotten_min_ms: int = 25000  # Wrong and slower than this
    good_accuracy: float = 0.8
    good_speed_ms: float = 10000


RECOMMENDATIONS = {
    "accuracy_good": "Excellent! Your command of sentences is solid.",
    "accuracy_low": "Practice building sentences in the Mastery Lab.",
    "speed_good": "You process sentences with good agility.",
    "speed_low": "Take your time to read each context carefully.",
}


@dataclass
class LearningStatistics:
    """Historical performance for one language."""

    exam_count: int
    average_accuracy_percent: int
    mastered_count: int
    strongest: list[Card] = field(default_factory=list)
    weakest: list[Card] = field(default_factory=list)
    error_breakdown: list[tuple[str, int]] = field(default_factory=list)


# =============================================================================
# Aggregator
# =============================================================================


class ResultAggregator:
    """
    Turns session outcomes into card updates and reports.

    Stateless apart from its MemoryModel and thresholds.
    """

    def __init__(
        self,
        memory: MemoryModel | None = None,
        thresholds: ReportThresholds | None = None,
    ):
        self.memory = memory or MemoryModel()
        self.thresholds = thresholds or ReportThresholds()

    def apply_practice_results(
        self,
        cards: Sequence[Card],
        results: Iterable[PracticeResult],
        now: int,
    ) -> list[Card]:
        """
        Advance every card that has a result.

        Results are applied in order, so a card answered twice advances
        twice. Cards without a result pass through unchanged.
        """
        by_id = {c.id: c for c in cards}
        applied = 0

        for result in results:
            card = by_id.get(result.card_id)
            if card is None:
                logger.warning(f"Practice result for unknown card {result.card_id}")
                continue
            card = self.memory.advance(card, result.is_correct, now)
            if result.pronunciation_score is not None:
                card = replace(
                    card,
                    pronunciation_history=card.pronunciation_history
                    + (result.pronunciation_score,),
                )
            by_id[result.card_id] = card
            applied += 1

        logger.debug(f"Applied {applied} practice results")
        return [by_id[c.id] for c in cards]

    def build_exam_report(
        self,
        results: Sequence[ExamQuestionResult],
        language: Language,
        total_time_ms: int,
        now: int,
        report_id: str | None = None,
    ) -> ExamReport:
        """
        Summarize a finished exam.

        Args:
            results: Graded questions, at least one
            language: Exam language
            total_time_ms: Wall-clock duration of the exam
            now: Report date (ms epoch)
            report_id: Optional fixed id

        Raises:
            ValueError: If results is empty
        """
        if not results:
            raise ValueError("Cannot build an exam report without results")

        t = self.thresholds
        accuracy = sum(1 for r in results if r.is_correct) / len(results)
        speed = sum(r.response_time_ms for r in results) / len(results)

        pron_scores = [r.pronunciation_score for r in results if r.pronunciation_score is not None]
        pron_avg = sum(pron_scores) / len(pron_scores) if pron_scores else 0.0

        # Categories overlap: a slow wrong answer is both weak and forgotten
        mastered = [r.card_id for r in results if r.is_correct and r.response_time_ms < t.mastered_max_ms]
        weak = [r.card_id for r in results if not r.is_correct or r.response_time_ms > t.weak_min_ms]
        forgotten = [
            r.card_id for r in results if not r.is_correct and r.response_time_ms > t.forgotten_min_ms
        ]

        recommendations = (
            RECOMMENDATIONS["accuracy_good" if accuracy > t.good_accuracy else "accuracy_low"],
            RECOMMENDATIONS["speed_good" if speed < t.good_speed_ms else "speed_low"],
        )

        report = ExamReport(
            id=report_id or new_id(),
            date=now,
            language=language,
            total_time_ms=total_time_ms,
            accuracy=accuracy,
            speed_score=speed,
            results=tuple(results),
            mastered_ids=tuple(mastered),
            weak_ids=tuple(weak),
            forgotten_ids=tuple(forgotten),
            recommendations=recommendations,
            pronunciation_avg=pron_avg,
        )

        logger.info(
            f"Exam report {report.id}: accuracy={accuracy:.0%}, "
            f"speed={speed:.0f}ms, {len(mastered)} mastered, {len(weak)} weak"
        )
        return report

    def apply_exam_report(
        self,
        cards: Sequence[Card],
        report: ExamReport,
        now: int,
    ) -> list[Card]:
        """
        Advance each card once using its first result in the report.

        Also stamps the exam accuracy on the card as ``last_exam_score``.
        """
        first_result: dict[str, ExamQuestionResult] = {}
        for result in report.results:
            first_result.setdefault(result.card_id, result)

        updated = []
        for card in cards:
            result = first_result.get(card.id)
            if result is None:
                updated.append(card)
                continue
            card = self.memory.advance(card, result.is_correct, now)
            updated.append(replace(card, last_exam_score=report.accuracy))
        return updated

    # =========================================================================
    # Mastery Lab
    # =========================================================================

    @staticmethod
    def record_sentence(
        card: Card,
        sentence: str,
        is_correct: bool,
        feedback: str,
        now: int,
        improved_version: str | None = None,
    ) -> Card:
        """Append a practiced sentence. Scheduling state is untouched."""
        entry = SentenceEntry(
            id=new_id(),
            user_sentence=sentence,
            feedback=feedback,
            date=now,
            is_correct=is_correct,
            improved_version=improved_version,
        )
        return replace(card, sentence_history=card.sentence_history + (entry,))

    # =========================================================================
    # History
    # =========================================================================

    @staticmethod
    def build_statistics(
        history: Sequence[ExamReport],
        cards: Sequence[Card],
        top: int = 5,
    ) -> LearningStatistics:
        """
        Summarize exam history and the card collection.

        Args:
            history: Exam reports (already filtered to one language)
            cards: Cards of the same language
            top: How many strongest/weakest cards to list
        """
        avg = (
            round_half_up(sum(h.accuracy for h in history) / len(history) * 100) if history else 0
        )
        errors: Counter[str] = Counter(
            r.error_type.value
            for h in history
            for r in h.results
            if not r.is_correct and r.error_type is not None
        )

        return LearningStatistics(
            exam_count=len(history),
            average_accuracy_percent=avg,
            mastered_count=sum(1 for c in cards if c.status == CardStatus.MASTERED),
            strongest=sorted(cards, key=lambda c: c.easiness_factor, reverse=True)[:top],
            weakest=sorted(cards, key=lambda c: c.easiness_factor)[:top],
            error_breakdown=sorted(errors.items(), key=lambda kv: kv[1], reverse=True),
        )
