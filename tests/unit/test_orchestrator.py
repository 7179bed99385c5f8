"""
Unit tests for the session state machine.
"""

from unittest.mock import MagicMock

import pytest

from growfluent.errors import InvalidTransition, OracleFailed, SelectionRefused
from growfluent.oracle.base import Oracle
from growfluent.oracle.schemas import (
    ExamExercise,
    GradingResponse,
    SentenceEvaluation,
    TranslationResponse,
)
from growfluent.srs.models import (
    DAY_MS,
    CardStatus,
    ErrorType,
    ExamQuestionResult,
    Language,
    PracticeResult,
)
from growfluent.srs.orchestrator import (
    SessionContext,
    SessionOrchestrator,
    SessionState,
    SessionType,
)
from growfluent.srs.selector import SessionSelector
from growfluent.storage.base import CardStore


@pytest.fixture
def store():
    return MagicMock(spec=CardStore)


@pytest.fixture
def oracle():
    return MagicMock(spec=Oracle)


@pytest.fixture
def orchestrator(rng, now, store, oracle):
    return SessionOrchestrator(
        selector=SessionSelector(rng=rng),
        store=store,
        oracle=oracle,
        clock=lambda: now,
    )


@pytest.fixture
def idle():
    return SessionContext.idle(Language.ENGLISH)


@pytest.fixture
def cards(make_card, now):
    return [
        make_card("due1", next_review_at=now - DAY_MS, repetition_count=1, last_interval=1),
        make_card("due2", next_review_at=now - 2 * DAY_MS, repetition_count=1, last_interval=1),
        make_card(
            "future",
            next_review_at=now + 3 * DAY_MS,
            repetition_count=2,
            last_interval=6,
            status=CardStatus.LEARNING,
        ),
        make_card("french", language=Language.FRENCH),
    ]


def _answer_all(orchestrator, ctx, correct=True):
    while ctx.state == SessionState.IN_SESSION:
        item = ctx.current_item
        ctx = orchestrator.submit_session_result(
            ctx, PracticeResult(item.card.id, correct, 2000)
        )
    return ctx


class TestDailySession:
    def test_start(self, orchestrator, idle, cards):
        ctx = orchestrator.start_daily_session(idle, cards)

        assert ctx.state == SessionState.IN_SESSION
        assert ctx.session_type == SessionType.DAILY
        assert [i.card.id for i in ctx.items] == ["due2", "due1"]
        assert ctx.session_id is not None

    def test_refused_when_nothing_due(self, orchestrator, idle, cards):
        with pytest.raises(SelectionRefused):
            orchestrator.start_daily_session(idle, [cards[2]])

    def test_full_cycle_commits_results(self, orchestrator, idle, cards, store, now):
        ctx = orchestrator.start_daily_session(idle, cards)
        ctx = _answer_all(orchestrator, ctx)
        assert ctx.state == SessionState.FINISHED

        outcome = orchestrator.finish_session(ctx, cards)

        assert outcome.context.state == SessionState.IDLE
        assert outcome.report is None
        by_id = {c.id: c for c in outcome.cards}
        assert by_id["due1"].last_interval == 6
        assert by_id["due2"].next_review_at == now + 6 * DAY_MS
        assert by_id["future"] is cards[2]
        assert [c.id for c in outcome.cards] == [c.id for c in cards]
        store.save_cards.assert_called_once()
        assert {c.id for c in store.save_cards.call_args[0][0]} == {"due1", "due2"}
        store.append_exam_report.assert_not_called()

    def test_deleted_card_not_resurrected(self, orchestrator, idle, cards, store):
        ctx = _answer_all(orchestrator, orchestrator.start_daily_session(idle, cards))
        live = [c for c in cards if c.id != "due1"]

        outcome = orchestrator.finish_session(ctx, live)

        assert "due1" not in {c.id for c in outcome.cards}
        assert {c.id for c in store.save_cards.call_args[0][0]} == {"due2"}

    def test_get_due_count(self, orchestrator, cards):
        assert orchestrator.get_due_count(cards, Language.ENGLISH) == 2
        assert orchestrator.get_due_count(cards, Language.FRENCH) == 1
        assert orchestrator.get_due_count(cards, Language.CATALAN) == 0


class TestFreePractice:
    def test_uses_whole_language_pool(self, orchestrator, idle, cards):
        ctx = orchestrator.start_free_practice(idle, cards)

        assert {i.card.id for i in ctx.items} == {"due1", "due2", "future"}

    def test_refused_on_empty_collection(self, orchestrator, idle):
        with pytest.raises(SelectionRefused):
            orchestrator.start_free_practice(idle, [])


class TestAbandon:
    def test_abandon_discards_results(self, orchestrator, idle, cards, store):
        ctx = orchestrator.start_daily_session(idle, cards)
        ctx = orchestrator.submit_session_result(
            ctx, PracticeResult(ctx.current_item.card.id, True, 1000)
        )

        ctx = orchestrator.abandon(ctx)

        assert ctx.state == SessionState.IDLE
        assert ctx.results == ()
        store.save_cards.assert_not_called()
        store.upsert_card.assert_not_called()

    def test_abandon_when_idle_is_invalid(self, orchestrator, idle):
        with pytest.raises(InvalidTransition):
            orchestrator.abandon(idle)


class TestInvalidTransitions:
    def test_cannot_start_twice(self, orchestrator, idle, cards):
        ctx = orchestrator.start_daily_session(idle, cards)

        with pytest.raises(InvalidTransition):
            orchestrator.start_free_practice(ctx, cards)

    def test_cannot_finish_early(self, orchestrator, idle, cards):
        ctx = orchestrator.start_daily_session(idle, cards)

        with pytest.raises(InvalidTransition):
            orchestrator.finish_session(ctx, cards)

    def test_cannot_submit_when_idle(self, orchestrator, idle):
        with pytest.raises(InvalidTransition):
            orchestrator.submit_session_result(idle, PracticeResult("x", True, 1))

    def test_result_for_wrong_card_rejected(self, orchestrator, idle, cards):
        ctx = orchestrator.start_daily_session(idle, cards)

        with pytest.raises(ValueError):
            orchestrator.submit_session_result(ctx, PracticeResult("future", True, 1))


class TestSubmitAnswer:
    def test_graded_by_oracle(self, orchestrator, idle, cards, oracle):
        oracle.grade.return_value = GradingResponse(is_correct=True, feedback="Well done")
        ctx = orchestrator.start_daily_session(idle, cards)
        item = ctx.current_item

        ctx, grade = orchestrator.submit_answer(ctx, "traducción due2", 1500)

        assert grade.is_correct
        assert ctx.index == 1
        assert ctx.results[0] == PracticeResult(item.card.id, True, 1500)
        oracle.grade.assert_called_once_with(
            item.card.phrase, "traducción due2", item.card.translation, Language.ENGLISH, None
        )

    def test_oracle_failure_leaves_item_ungraded(self, orchestrator, idle, cards, oracle):
        oracle.grade.side_effect = OracleFailed("down")
        ctx = orchestrator.start_daily_session(idle, cards)

        with pytest.raises(OracleFailed):
            orchestrator.submit_answer(ctx, "anything", 1000)

        assert ctx.state == SessionState.IN_SESSION
        assert ctx.index == 0
        assert ctx.results == ()

    def test_without_oracle(self, rng, now, idle, cards):
        orchestrator = SessionOrchestrator(selector=SessionSelector(rng=rng), clock=lambda: now)
        ctx = orchestrator.start_daily_session(idle, cards)

        with pytest.raises(OracleFailed):
            orchestrator.submit_answer(ctx, "anything", 1000)


class TestExam:
    @pytest.fixture
    def exam_cards(self, make_card):
        return [make_card(f"c{i}") for i in range(6)]

    def test_refused_below_minimum(self, orchestrator, idle, exam_cards):
        with pytest.raises(SelectionRefused):
            orchestrator.start_exam(idle, exam_cards[:4])

    def test_exercises_limited_to_selection(self, orchestrator, idle, exam_cards, oracle):
        oracle.generate_exam.side_effect = lambda cards, language: [
            ExamExercise(
                card_id=c.id,
                type="translation",
                question=f"Translate {c.phrase}",
                correct_answer=c.translation,
            )
            for c in cards
        ] + [
            ExamExercise(card_id="stranger", type="reverse", question="?", correct_answer="!")
        ]

        ctx = orchestrator.start_exam(idle, exam_cards)

        assert ctx.session_type == SessionType.EXAM
        assert len(ctx.items) == 6
        assert "stranger" not in {i.card.id for i in ctx.items}
        assert ctx.current_item.question.startswith("Translate")

    def test_generation_failure_keeps_idle(self, orchestrator, idle, exam_cards, oracle):
        oracle.generate_exam.side_effect = OracleFailed("quota")

        with pytest.raises(OracleFailed):
            orchestrator.start_exam(idle, exam_cards)

    def test_no_usable_exercises_refused(self, orchestrator, idle, exam_cards, oracle):
        oracle.generate_exam.return_value = []

        with pytest.raises(SelectionRefused):
            orchestrator.start_exam(idle, exam_cards)

    def test_full_exam_builds_report(self, orchestrator, idle, exam_cards, oracle, store):
        oracle.generate_exam.side_effect = lambda cards, language: [
            ExamExercise(
                card_id=c.id, type="translation", question=c.phrase, correct_answer=c.translation
            )
            for c in cards
        ]
        oracle.grade.side_effect = [
            GradingResponse(is_correct=True, feedback="ok"),
            GradingResponse(is_correct=False, feedback="no", error_type=ErrorType.SPELLING),
        ] + [GradingResponse(is_correct=True, feedback="ok")] * 4

        ctx = orchestrator.start_exam(idle, exam_cards)
        while ctx.state == SessionState.IN_SESSION:
            ctx, _ = orchestrator.submit_answer(ctx, "answer", 2000)

        outcome = orchestrator.finish_session(ctx, exam_cards)

        assert outcome.report is not None
        assert outcome.report.accuracy == pytest.approx(5 / 6)
        assert all(isinstance(r, ExamQuestionResult) for r in outcome.report.results)
        assert outcome.report.results[1].error_type == ErrorType.SPELLING
        assert all(c.last_exam_score is not None for c in outcome.cards)
        store.append_exam_report.assert_called_once_with(outcome.report)

    def test_without_oracle_uses_plain_questions(self, rng, now, idle, exam_cards):
        orchestrator = SessionOrchestrator(selector=SessionSelector(rng=rng), clock=lambda: now)

        ctx = orchestrator.start_exam(idle, exam_cards)
        ctx = _answer_all(orchestrator, ctx)
        outcome = orchestrator.finish_session(ctx, exam_cards)

        assert outcome.report.accuracy == 1.0
        assert outcome.report.results[0].question == ctx.items[0].card.phrase


    def test_self_graded_pronunciation_reaches_report(self, rng, now, idle, exam_cards):
        orchestrator = SessionOrchestrator(selector=SessionSelector(rng=rng), clock=lambda: now)
        ctx = orchestrator.start_exam(idle, exam_cards)

        scores = iter([80.0, 60.0, None, 80.0, 60.0, None])
        while ctx.state == SessionState.IN_SESSION:
            ctx = orchestrator.submit_session_result(
                ctx,
                PracticeResult(ctx.current_item.card.id, True, 3000, pronunciation_score=next(scores)),
            )
        outcome = orchestrator.finish_session(ctx, exam_cards)

        assert outcome.report.pronunciation_avg == pytest.approx(70.0)
        assert outcome.report.results[0].pronunciation_score == 80.0
        assert outcome.report.results[2].pronunciation is None


class TestCollectionOperations:
    def test_add_phrase(self, orchestrator, cards, oracle, store, now):
        oracle.translate.return_value = TranslationResponse(
            translation="romper el hielo",
            explanation="To start a conversation.",
            synonyms=[],
            mastery_prompts=[],
        )

        updated, card = orchestrator.add_phrase(cards, "break the ice", Language.ENGLISH)

        assert updated[0] is card
        assert card.translation == "romper el hielo"
        assert card.enrichment["explanation"] == "To start a conversation."
        assert card.created_at == card.next_review_at == now
        store.upsert_card.assert_called_once_with(card)

    def test_delete_card(self, orchestrator, cards, store):
        updated = orchestrator.delete_card(cards, "due1")

        assert "due1" not in {c.id for c in updated}
        store.delete_card.assert_called_once_with("due1")

    def test_practice_sentence(self, orchestrator, cards, oracle, store):
        oracle.evaluate_sentence.return_value = SentenceEvaluation(
            is_correct=False,
            contains_target_word=True,
            feedback="Check the tense.",
            improved_version="Better sentence.",
        )

        updated, card = orchestrator.practice_sentence(cards, "future", "A sentence.")

        assert card.sentence_history[0].improved_version == "Better sentence."
        assert card.next_review_at == cards[2].next_review_at
        assert next(c for c in updated if c.id == "future") is card
        store.upsert_card.assert_called_once_with(card)

    def test_practice_sentence_unknown_card(self, orchestrator, cards):
        with pytest.raises(KeyError):
            orchestrator.practice_sentence(cards, "ghost", "A sentence.")
