"""
Unit tests for the SM-2 memory model.
"""

import pytest

from growfluent.srs.memory_model import MemoryModel, SM2Config, advance, round_half_up
from growfluent.srs.models import DAY_MS, CardStatus


class TestRoundHalfUp:
    def test_rounds_half_up(self):
        assert round_half_up(22.5) == 23
        assert round_half_up(2.5) == 3

    def test_rounds_down_below_half(self):
        assert round_half_up(25.2) == 25


class TestCorrectAnswers:
    def test_first_correct_answer(self, make_card, now):
        card = make_card("c1")

        result = advance(card, True, now)

        assert result.last_interval == 1
        assert result.repetition_count == 1
        assert result.easiness_factor == pytest.approx(2.6)
        assert result.status == CardStatus.LEARNING
        assert result.next_review_at == now + DAY_MS

    def test_second_correct_answer_gets_six_days(self, make_card, now):
        card = make_card("c1", repetition_count=1, last_interval=1, easiness_factor=2.6)

        result = advance(card, True, now)

        assert result.last_interval == 6
        assert result.repetition_count == 2
        assert result.next_review_at == now + 6 * DAY_MS

    def test_third_correct_answer_reaches_mastery(self, make_card, now):
        card = make_card("c1", repetition_count=2, last_interval=6, easiness_factor=2.8)

        result = advance(card, True, now)

        # round(6 * 2.8 * 1.5) = 25
        assert result.last_interval == 25
        assert result.status == CardStatus.MASTERED

    def test_interval_at_threshold_is_not_mastered(self, make_card, now):
        card = make_card("c1", repetition_count=2, last_interval=5, easiness_factor=2.8)

        result = advance(card, True, now)

        # round(5 * 2.8 * 1.5) = 21
        assert result.last_interval == 21
        assert result.status == CardStatus.LEARNING

    def test_interval_uses_clamped_easiness(self, make_card, now):
        low = make_card("low", repetition_count=2, last_interval=11, easiness_factor=0.5)
        high = make_card("high", repetition_count=2, last_interval=11, easiness_factor=9.0)

        # 11 * 1.3 * 1.5 = 21.45 and 11 * 3.5 * 1.5 = 57.75
        assert advance(low, True, now).last_interval == 21
        assert advance(high, True, now).last_interval == 58

    def test_custom_mastery_threshold(self, make_card, now):
        model = MemoryModel(SM2Config(mastery_interval=5))
        card = make_card("c1", repetition_count=1, last_interval=1)

        result = model.advance(card, True, now)

        assert result.last_interval == 6
        assert result.status == CardStatus.MASTERED


class TestIncorrectAnswers:
    def test_mastered_card_lapses(self, mastered_card, now):
        result = advance(mastered_card, False, now)

        assert result.repetition_count == 0
        assert result.last_interval == 1
        assert result.easiness_factor == pytest.approx(2.6)
        assert result.status == CardStatus.LEARNING
        assert result.next_review_at == now + DAY_MS

    def test_counters(self, make_card, now):
        card = make_card("c1", times_reviewed=4, success_count=3, failure_count=1)

        result = advance(card, False, now)

        assert result.times_reviewed == 5
        assert result.success_count == 3
        assert result.failure_count == 2


class TestEasinessBounds:
    def test_never_below_minimum(self, make_card, now):
        card = make_card("c1", easiness_factor=1.3)

        result = advance(card, False, now)

        assert result.easiness_factor == 1.3

    def test_never_above_maximum(self, make_card, now):
        card = make_card("c1", easiness_factor=3.5)

        result = advance(card, True, now)

        assert result.easiness_factor == 3.5

    def test_out_of_range_input_is_clamped(self, make_card, now):
        card = make_card("c1", easiness_factor=0.5)

        result = advance(card, True, now)

        assert result.easiness_factor == 1.3

    @pytest.mark.parametrize("answers", [[True] * 12, [False] * 12, [True, False] * 6])
    def test_stays_in_range_over_sequences(self, make_card, now, answers):
        card = make_card("c1")
        for i, is_correct in enumerate(answers):
            card = advance(card, is_correct, now + i * DAY_MS)
            assert 1.3 <= card.easiness_factor <= 3.5
            assert card.last_interval >= 1
            assert card.next_review_at >= card.created_at


class TestPurity:
    def test_input_card_is_unchanged(self, make_card, now):
        card = make_card("c1")

        advance(card, True, now)

        assert card.repetition_count == 0
        assert card.status == CardStatus.NEW

    def test_same_input_same_output(self, make_card, now):
        card = make_card("c1", repetition_count=2, last_interval=6)

        assert advance(card, True, now) == advance(card, True, now)
