"""
Session Orchestrator.

Owns the session state machine:

    IDLE -> SELECTING -> IN_SESSION <-> GRADING -> FINISHED -> IDLE

Session state is an explicit, immutable SessionContext passed into and
returned from every call. Cards are snapshotted when a session starts;
results accumulate in the context and are only folded into card state by
``finish_session`` (accumulate-then-commit). Abandoning a session
discards everything.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence, Union

from loguru import logger

from growfluent.errors import InvalidTransition, OracleFailed, SelectionRefused

from .aggregator import ResultAggregator
from .models import (
    Card,
    ExamQuestionResult,
    ExamReport,
    Language,
    PracticeResult,
    new_id,
    now_ms,
)
from .selector import SessionSelector

if TYPE_CHECKING:
    from growfluent.oracle.base import Oracle
    from growfluent.oracle.schemas import ExamExercise, GradingResponse
    from growfluent.storage.base import CardStore

SessionResult = Union[PracticeResult, ExamQuestionResult]

# =============================================================================
# Session State
# =============================================================================


class SessionState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    IN_SESSION = "in_session"
    GRADING = "grading"
    FINISHED = "finished"


class SessionType(str, Enum):
    DAILY = "daily"
    FREE = "free"
    EXAM = "exam"


@dataclass(frozen=True)
class SessionItem:
    """One step of a session: a card snapshot and, for exams, its exercise."""

    card: Card
    exercise: ExamExercise | None = None

    @property
    def question(self) -> str:
        return self.exercise.question if self.exercise else self.card.phrase

    @property
    def correct_answer(self) -> str:
        return self.exercise.correct_answer if self.exercise else self.card.translation

    @property
    def kind(self) -> str:
        return self.exercise.type if self.exercise else "translation"


@dataclass(frozen=True)
class SessionContext:
    """
    Everything about the learner's current session.

    Attributes:
        language: Active language tab
        state: Position in the state machine
        items: Session steps in order, holding start-of-session snapshots
        index: Next item to grade
        results: Graded results so far, one per finished item
        started_at: Session start (ms epoch)
    """

    language: Language
    state: SessionState = SessionState.IDLE
    session_type: SessionType | None = None
    session_id: str | None = None
    items: tuple[SessionItem, ...] = ()
    index: int = 0
    results: tuple[SessionResult, ...] = ()
    started_at: int | None = None

    @classmethod
    def idle(cls, language: Language) -> SessionContext:
        return cls(language=language)

    @property
    def current_item(self) -> SessionItem | None:
        if self.state not in (SessionState.IN_SESSION, SessionState.GRADING):
            return None
        return self.items[self.index]

    @property
    def snapshot(self) -> list[Card]:
        """Distinct card snapshots taken at session start."""
        seen: dict[str, Card] = {}
        for item in self.items:
            seen.setdefault(item.card.id, item.card)
        return list(seen.values())

    @property
    def remaining(self) -> int:
        return len(self.items) - self.index


@dataclass
class SessionOutcome:
    """What ``finish_session`` hands back to the UI."""

    context: SessionContext
    cards: list[Card]
    report: ExamReport | None = None
    updated: list[Card] = field(default_factory=list)


# =============================================================================
# Orchestrator
# =============================================================================


class SessionOrchestrator:
    """
    Top-level controller for study sessions.

    Collaborators are injected: selector and aggregator hold the
    algorithms, the oracle grades answers and writes exams, the store
    persists committed results, the clock supplies "now".
    """

    def __init__(
        self,
        selector: SessionSelector | None = None,
        aggregator: ResultAggregator | None = None,
        store: CardStore | None = None,
        oracle: Oracle | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.selector = selector or SessionSelector()
        self.aggregator = aggregator or ResultAggregator()
        self.store = store
        self.oracle = oracle
        self.clock = clock or now_ms

    # =========================================================================
    # Queries
    # =========================================================================

    def get_due_count(self, cards: Sequence[Card], language: Language) -> int:
        """Words ready for today's session in ``language``."""
        pool = self.selector.cards_for_language(cards, language)
        return self.selector.due_count(pool, self.clock())

    # =========================================================================
    # Starting Sessions
    # =========================================================================

    def start_daily_session(self, ctx: SessionContext, cards: Sequence[Card]) -> SessionContext:
        """Start today's due review."""
        selecting = self._selecting(ctx, SessionType.DAILY)
        pool = self.selector.cards_for_language(cards, ctx.language)
        selection = self.selector.select_daily(pool, self.clock())
        if not selection:
            raise SelectionRefused(SessionType.DAILY.value, "no cards are due")
        return self._begin(selecting, [SessionItem(card) for card in selection])

    def start_free_practice(self, ctx: SessionContext, cards: Sequence[Card]) -> SessionContext:
        """Start a random practice round over the whole collection."""
        selecting = self._selecting(ctx, SessionType.FREE)
        pool = self.selector.cards_for_language(cards, ctx.language)
        if len(pool) < self.selector.config.free_min_cards:
            raise SelectionRefused(SessionType.FREE.value, "the collection is empty")
        selection = self.selector.select_free(pool)
        return self._begin(selecting, [SessionItem(card) for card in selection])

    def start_exam(self, ctx: SessionContext, cards: Sequence[Card]) -> SessionContext:
        """
        Start the weekly challenge.

        With an oracle configured, exercises are generated for the selected
        cards; otherwise each card is asked as a plain translation.

        Raises:
            SelectionRefused: Fewer than the minimum cards, or no usable exercises
            OracleFailed: Exercise generation failed
        """
        selecting = self._selecting(ctx, SessionType.EXAM)
        pool = self.selector.cards_for_language(cards, ctx.language)
        minimum = self.selector.config.exam_min_cards
        if len(pool) < minimum:
            raise SelectionRefused(
                SessionType.EXAM.value, f"needs at least {minimum} cards, have {len(pool)}"
            )

        selection = self.selector.select_exam(pool)
        if self.oracle is None:
            return self._begin(selecting, [SessionItem(card) for card in selection])

        try:
            exercises = self.oracle.generate_exam(selection, ctx.language)
        except OracleFailed:
            logger.error("Exam generation failed; staying idle")
            raise

        by_id = {card.id: card for card in selection}
        items = []
        for exercise in exercises:
            card = by_id.get(exercise.card_id)
            if card is None:
                logger.warning(f"Dropping exercise for unselected card {exercise.card_id}")
                continue
            items.append(SessionItem(card, exercise))

        if not items:
            raise SelectionRefused(SessionType.EXAM.value, "no usable exercises were generated")
        return self._begin(selecting, items)

    def _selecting(self, ctx: SessionContext, session_type: SessionType) -> SessionContext:
        if ctx.state != SessionState.IDLE:
            raise InvalidTransition(f"start a {session_type.value} session", ctx.state.value)
        return replace(ctx, state=SessionState.SELECTING, session_type=session_type)

    def _begin(self, ctx: SessionContext, items: list[SessionItem]) -> SessionContext:
        started = replace(
            ctx,
            state=SessionState.IN_SESSION,
            session_id=new_id(),
            items=tuple(items),
            index=0,
            results=(),
            started_at=self.clock(),
        )
        logger.info(
            f"Started {ctx.session_type.value} session {started.session_id} "
            f"({ctx.language.value}, {len(items)} items)"
        )
        return started

    # =========================================================================
    # Answering
    # =========================================================================

    def submit_answer(
        self,
        ctx: SessionContext,
        answer: str,
        response_time_ms: int,
        audio: bytes | None = None,
    ) -> tuple[SessionContext, GradingResponse]:
        """
        Grade the current item with the oracle and record the result.

        Returns:
            (next context, grading feedback for display)

        Raises:
            OracleFailed: The item stays ungraded; the caller keeps ``ctx``
        """
        if ctx.state != SessionState.IN_SESSION:
            raise InvalidTransition("submit an answer", ctx.state.value)
        if self.oracle is None:
            raise OracleFailed("No oracle configured for grading")

        grading = replace(ctx, state=SessionState.GRADING)
        item = grading.items[grading.index]

        try:
            grade = self.oracle.grade(
                item.question, answer, item.correct_answer, ctx.language, audio
            )
        except OracleFailed:
            logger.warning(f"Grading failed for card {item.card.id}; item left ungraded")
            raise

        if ctx.session_type == SessionType.EXAM:
            result: SessionResult = ExamQuestionResult(
                card_id=item.card.id,
                is_correct=grade.is_correct,
                response_time_ms=response_time_ms,
                question=item.question,
                user_answer=answer,
                correct_answer=item.correct_answer,
                type=item.kind,
                error_type=grade.error_type,
                explanation=grade.explanation,
                example=grade.example,
                example_translation=grade.example_translation,
                pronunciation=(
                    grade.pronunciation.model_dump(by_alias=True) if grade.pronunciation else None
                ),
            )
        else:
            result = PracticeResult(
                card_id=item.card.id,
                is_correct=grade.is_correct,
                response_time_ms=response_time_ms,
                pronunciation_score=grade.pronunciation.score if grade.pronunciation else None,
            )

        return self.submit_session_result(grading, result), grade

    def submit_session_result(self, ctx: SessionContext, result: SessionResult) -> SessionContext:
        """
        Record an already-graded result for the current item.

        The last item moves the session to FINISHED.
        """
        if ctx.state not in (SessionState.IN_SESSION, SessionState.GRADING):
            raise InvalidTransition("submit a result", ctx.state.value)

        item = ctx.items[ctx.index]
        if result.card_id != item.card.id:
            raise ValueError(
                f"Result for card {result.card_id} does not match current card {item.card.id}"
            )

        if ctx.session_type == SessionType.EXAM and isinstance(result, PracticeResult):
            result = ExamQuestionResult(
                card_id=result.card_id,
                is_correct=result.is_correct,
                response_time_ms=result.response_time_ms,
                question=item.question,
                correct_answer=item.correct_answer,
                type=item.kind,
                pronunciation=(
                    {"score": result.pronunciation_score}
                    if result.pronunciation_score is not None
                    else None
                ),
            )
        elif ctx.session_type != SessionType.EXAM and isinstance(result, ExamQuestionResult):
            result = PracticeResult(
                card_id=result.card_id,
                is_correct=result.is_correct,
                response_time_ms=result.response_time_ms,
                pronunciation_score=result.pronunciation_score,
            )

        index = ctx.index + 1
        state = SessionState.FINISHED if index >= len(ctx.items) else SessionState.IN_SESSION
        if state == SessionState.FINISHED:
            logger.debug(f"Session {ctx.session_id} finished grading")

        return replace(ctx, state=state, index=index, results=ctx.results + (result,))

    # =========================================================================
    # Ending Sessions
    # =========================================================================

    def finish_session(self, ctx: SessionContext, cards: Sequence[Card]) -> SessionOutcome:
        """
        Commit a finished session.

        Updates are computed from the start-of-session snapshots, merged
        into ``cards`` (the live collection) and written to the store.
        Cards deleted during the session are not resurrected.

        Returns:
            SessionOutcome with an IDLE context, the updated collection and,
            for exams, the report
        """
        if ctx.state != SessionState.FINISHED:
            raise InvalidTransition("finish the session", ctx.state.value)

        now = self.clock()
        snapshot = ctx.snapshot
        report = None

        if ctx.session_type == SessionType.EXAM:
            report = self.aggregator.build_exam_report(
                list(ctx.results),
                ctx.language,
                total_time_ms=now - (ctx.started_at or now),
                now=now,
            )
            updated = self.aggregator.apply_exam_report(snapshot, report, now)
        else:
            updated = self.aggregator.apply_practice_results(snapshot, ctx.results, now)

        graded_ids = {r.card_id for r in ctx.results}
        live_ids = {c.id for c in cards}
        changed = {c.id: c for c in updated if c.id in graded_ids and c.id in live_ids}
        merged = [changed.get(c.id, c) for c in cards]

        if self.store is not None:
            self.store.save_cards(list(changed.values()))
            if report is not None:
                self.store.append_exam_report(report)

        logger.info(
            f"Committed {ctx.session_type.value} session {ctx.session_id}: "
            f"{len(changed)} cards updated"
        )
        return SessionOutcome(
            context=SessionContext.idle(ctx.language),
            cards=merged,
            report=report,
            updated=list(changed.values()),
        )

    def abandon(self, ctx: SessionContext) -> SessionContext:
        """Drop the session and every result gathered so far."""
        if ctx.state not in (SessionState.IN_SESSION, SessionState.GRADING):
            raise InvalidTransition("abandon the session", ctx.state.value)
        logger.info(
            f"Abandoned session {ctx.session_id} after {len(ctx.results)} graded items"
        )
        return SessionContext.idle(ctx.language)

    # =========================================================================
    # Collection Management
    # =========================================================================

    def add_phrase(
        self,
        cards: Sequence[Card],
        phrase: str,
        language: Language,
    ) -> tuple[list[Card], Card]:
        """
        Enrich a phrase with the oracle and add it as a new card.

        Returns:
            (collection with the new card first, the new card)
        """
        if self.oracle is None:
            raise OracleFailed("No oracle configured for enrichment")

        enrichment = self.oracle.translate(phrase, language)
        card = Card.create(
            phrase=phrase,
            language=language,
            now=self.clock(),
            translation=enrichment.translation,
            enrichment=enrichment.enrichment(),
        )
        if self.store is not None:
            self.store.upsert_card(card)

        logger.info(f"Added card {card.id} for '{phrase}' ({language.value})")
        return [card, *cards], card

    def delete_card(self, cards: Sequence[Card], card_id: str) -> list[Card]:
        """Explicit removal by the learner."""
        if self.store is not None:
            self.store.delete_card(card_id)
        return [c for c in cards if c.id != card_id]

    def practice_sentence(
        self,
        cards: Sequence[Card],
        card_id: str,
        sentence: str,
    ) -> tuple[list[Card], Card]:
        """
        Mastery Lab: have the oracle judge a sentence using the card's phrase.

        Scheduling state is not touched; the sentence is added to the
        card's history.
        """
        if self.oracle is None:
            raise OracleFailed("No oracle configured for sentence evaluation")

        card = next((c for c in cards if c.id == card_id), None)
        if card is None:
            raise KeyError(card_id)

        evaluation = self.oracle.evaluate_sentence(sentence, card.phrase, card.language)
        updated = self.aggregator.record_sentence(
            card,
            sentence,
            is_correct=evaluation.is_correct,
            feedback=evaluation.feedback,
            now=self.clock(),
            improved_version=evaluation.improved_version,
        )
        if self.store is not None:
            self.store.upsert_card(updated)
        return [updated if c.id == card_id else c for c in cards], updated
