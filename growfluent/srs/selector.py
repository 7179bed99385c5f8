"""
Session Selection.

Decides which cards make up each kind of session:
- Daily:  overdue cards (most overdue first), then never-reviewed cards
- Free:   a random sample of the whole collection
- Exam:   new + weak + mastered buckets, topped up at random

Selection never mutates cards. Given the same ``now`` and the same seeded
``random.Random`` the result is identical. All sorts are stable, so ties
keep input order.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Literal

from loguru import logger

from .models import Card, CardStatus, Language

SortOrder = Literal["date", "alphabetical"]


@dataclass(frozen=True)
class SelectorConfig:
    """Session sizes and thresholds."""

    daily_limit: int = 15
    free_limit: int = 10
    exam_limit: int = 15
    exam_target: int = 10  # Top up the exam to at least this many
    exam_bucket_size: int = 5  # Per bucket: new, weak, mastered
    weak_easiness: float = 2.2  # EF below this counts as weak
    exam_min_cards: int = 5  # Gate for starting an exam
    free_min_cards: int = 1  # Gate for free practice


class SessionSelector:
    """
    Builds card sets for daily review, free practice and exams.

    Randomness comes from the injected ``rng`` so tests can seed it.
    """

    def __init__(
        self,
        config: SelectorConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or SelectorConfig()
        self.rng = rng or random.Random()

    # =========================================================================
    # Daily Session
    # =========================================================================

    def select_daily(self, cards: Iterable[Card], now: int) -> list[Card]:
        """
        Cards for today's review.

        Overdue cards come first, oldest due date first. Brand-new cards
        (never answered correctly in a row) follow, newest first.
        """
        cards = list(cards)
        overdue = sorted(
            (c for c in cards if c.is_due(now)),
            key=lambda c: c.next_review_at,
        )
        overdue_ids = {c.id for c in overdue}
        brand_new = sorted(
            (c for c in cards if c.repetition_count == 0 and c.id not in overdue_ids),
            key=lambda c: c.created_at,
            reverse=True,
        )
        selection = (overdue + brand_new)[: self.config.daily_limit]

        logger.debug(
            f"Daily selection: {len(overdue)} overdue + {len(brand_new)} new "
            f"-> {len(selection)} cards"
        )
        return selection

    def due_count(self, cards: Iterable[Card], now: int) -> int:
        """Number of cards a daily session would start with."""
        return len(self.select_daily(cards, now))

    # =========================================================================
    # Free Practice
    # =========================================================================

    def select_free(self, cards: Iterable[Card]) -> list[Card]:
        """Uniform random sample without replacement."""
        cards = list(cards)
        return self.rng.sample(cards, min(self.config.free_limit, len(cards)))

    # =========================================================================
    # Exam
    # =========================================================================

    def select_exam(self, cards: Iterable[Card]) -> list[Card]:
        """
        Compose a weekly challenge.

        Steps:
        1. Up to 5 new cards, newest first
        2. Up to 5 weak cards (EF < 2.2), weakest first
        3. Up to 5 mastered cards, random
        4. Deduplicate by id in that order
        5. Top up at random to 10 if the pool allows
        6. Cap at 15
        """
        cards = list(cards)
        bucket = self.config.exam_bucket_size

        new_ones = sorted(
            (c for c in cards if c.status == CardStatus.NEW),
            key=lambda c: c.created_at,
            reverse=True,
        )[:bucket]
        weak_ones = sorted(
            (c for c in cards if c.easiness_factor < self.config.weak_easiness),
            key=lambda c: c.easiness_factor,
        )[:bucket]
        mastered = [c for c in cards if c.status == CardStatus.MASTERED]
        mastery_review = self.rng.sample(mastered, min(bucket, len(mastered)))

        combined = _dedupe_by_id(new_ones + weak_ones + mastery_review)

        if len(combined) < self.config.exam_target and len(cards) > len(combined):
            taken = {c.id for c in combined}
            remainder = [c for c in cards if c.id not in taken]
            needed = min(self.config.exam_target - len(combined), len(remainder))
            combined.extend(self.rng.sample(remainder, needed))

        selection = combined[: self.config.exam_limit]
        logger.debug(
            f"Exam selection: {len(new_ones)} new, {len(weak_ones)} weak, "
            f"{len(mastery_review)} mastered -> {len(selection)} cards"
        )
        return selection

    # =========================================================================
    # Collection Views
    # =========================================================================

    @staticmethod
    def cards_for_language(cards: Iterable[Card], language: Language) -> list[Card]:
        return [c for c in cards if c.language == language]

    @staticmethod
    def mastered(cards: Iterable[Card]) -> list[Card]:
        """Cards eligible for the Mastery Lab."""
        return [c for c in cards if c.status == CardStatus.MASTERED]

    @staticmethod
    def search(
        cards: Iterable[Card],
        term: str = "",
        order: SortOrder = "date",
    ) -> list[Card]:
        """
        Dictionary view: filter by phrase or translation, then sort.

        Args:
            cards: Cards to search
            term: Case-insensitive substring; blank matches everything
            order: "date" (newest first) or "alphabetical" (by phrase)
        """
        needle = term.strip().lower()
        found = [
            c
            for c in cards
            if not needle or needle in c.phrase.lower() or needle in c.translation.lower()
        ]
        if order == "alphabetical":
            return sorted(found, key=lambda c: c.phrase.casefold())
        return sorted(found, key=lambda c: c.created_at, reverse=True)


def _dedupe_by_id(cards: list[Card]) -> list[Card]:
    seen: set[str] = set()
    unique = []
    for card in cards:
        if card.id not in seen:
            seen.add(card.id)
            unique.append(card)
    return unique
