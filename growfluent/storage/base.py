"""
Store port.

The scheduler reads and writes whole card and exam-report documents
through this contract. Writes are full snapshots, never partial fields.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from growfluent.srs.models import Card, ExamReport, Language


class CardStore(ABC):
    """
    Port for card and exam-history persistence.

    Implementations:
        - SQLiteCardStore: local database file
        - RemoteDocumentStore: HTTP document store
        - FallbackCardStore: remote with guaranteed local fallback
    """

    @abstractmethod
    def load_cards(self, language: Language | None = None) -> list[Card]:
        """Cards, newest first, optionally for one language."""

    @abstractmethod
    def upsert_card(self, card: Card) -> None:
        """Insert or replace a card."""

    @abstractmethod
    def delete_card(self, card_id: str) -> None:
        """Remove a card. Missing ids are ignored."""

    @abstractmethod
    def load_exam_history(self) -> list[ExamReport]:
        """Exam reports, most recent first."""

    @abstractmethod
    def append_exam_report(self, report: ExamReport) -> None:
        """Add a report to the history."""

    def load_pending_ids(self) -> set[str]:
        """Card ids whose latest write has not reached a remote copy."""
        return set()

    def mark_pending(self, card_id: str, pending: bool) -> None:
        """Record or clear a pending remote write. Stores without a remote copy ignore it."""

    def save_cards(self, cards: list[Card]) -> None:
        """Upsert several cards."""
        for card in cards:
            self.upsert_card(card)

    def close(self) -> None:
        """Release resources."""
