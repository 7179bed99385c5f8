"""
SM-2 Memory Model.

Computes the next review state of a single card from a binary
correctness signal. Variant of SuperMemo 2:

- Correct:   interval 1, then 6, then round(last * EF * 1.5); EF += 0.1
- Incorrect: interval resets to 1, streak resets to 0; EF -= 0.2
- EF is kept within [1.3, 3.5]
- A card whose interval exceeds 21 days is "mastered"
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from .models import DAY_MS, Card, CardStatus

# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class SM2Config:
    """Tunables for the SM-2 variant."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    maximum_easiness: float = 3.5
    success_step: float = 0.1
    failure_step: float = 0.2
    first_interval: int = 1  # Days after the first correct answer
    second_interval: int = 6  # Days after the second correct answer
    growth_multiplier: float = 1.5
    mastery_interval: int = 21  # Interval above this is mastered


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (22.5 -> 23)."""
    return int(math.floor(value + 0.5))


# =============================================================================
# Memory Model
# =============================================================================


class MemoryModel:
    """
    Pure state transition for one card.

    Same card, same correctness and same ``now`` always give the same
    result. Persisting the returned card is the caller's job.
    """

    def __init__(self, config: SM2Config | None = None):
        self.config = config or SM2Config()

    def clamp_easiness(self, easiness: float) -> float:
        return min(self.config.maximum_easiness, max(self.config.minimum_easiness, easiness))

    def next_interval(self, card: Card, is_correct: bool) -> int:
        """Interval in days the card gets after this answer."""
        if not is_correct:
            return self.config.first_interval
        if card.repetition_count == 0:
            return self.config.first_interval
        if card.repetition_count == 1:
            return self.config.second_interval
        easiness = self.clamp_easiness(card.easiness_factor)
        return round_half_up(card.last_interval * easiness * self.config.growth_multiplier)

    def advance(self, card: Card, is_correct: bool, now: int) -> Card:
        """
        Apply one graded review.

        Args:
            card: Snapshot of the card before the review
            is_correct: Whether the learner answered correctly
            now: Current time (ms epoch)

        Returns:
            A new Card with updated scheduling state
        """
        new_interval = self.next_interval(card, is_correct)

        if is_correct:
            repetitions = card.repetition_count + 1
            easiness = card.easiness_factor + self.config.success_step
        else:
            repetitions = 0
            easiness = card.easiness_factor - self.config.failure_step

        status = (
            CardStatus.MASTERED
            if new_interval > self.config.mastery_interval
            else CardStatus.LEARNING
        )

        return replace(
            card,
            last_interval=new_interval,
            repetition_count=repetitions,
            easiness_factor=self.clamp_easiness(easiness),
            status=status,
            times_reviewed=card.times_reviewed + 1,
            success_count=card.success_count + (1 if is_correct else 0),
            failure_count=card.failure_count + (0 if is_correct else 1),
            next_review_at=max(card.created_at, now + new_interval * DAY_MS),
        )


_DEFAULT_MODEL = MemoryModel()


def advance(card: Card, is_correct: bool, now: int) -> Card:
    """Advance a card with the default SM-2 configuration."""
    return _DEFAULT_MODEL.advance(card, is_correct, now)
