"""
Remote store with a guaranteed local fallback.

Writes go to the local store first and then to the remote store on a
best-effort basis. A remote failure is logged, never raised: the local
copy stays authoritative for that card until a later remote write for
the same card succeeds. A remote "not found" switches the remote off for
the rest of the process.

Pending card ids are recorded in the local store, so a card written
while the remote was unreachable survives the next run's mirror and is
not deleted as a stale copy.

Writes for one card id are serialized; each write is the full card.
Per-card locks are dropped once no writer holds or waits on them.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from growfluent.errors import PersistenceFailed
from growfluent.srs.models import Card, ExamReport, Language

from .base import CardStore


class FallbackCardStore(CardStore):
    """Remote-first reads, local-first writes."""

    def __init__(self, local: CardStore, remote: CardStore | None = None):
        """
        Args:
            local: Durable local store
            remote: Optional remote store; None means local only
        """
        self.local = local
        self.remote = remote
        self._remote_active = remote is not None
        # Ids whose latest write only reached the local store
        self._dirty: set[str] = local.load_pending_ids()
        # card id -> [lock, holders and waiters]
        self._locks: dict[str, list] = {}
        self._guard = threading.Lock()

    @property
    def remote_active(self) -> bool:
        return self._remote_active

    @property
    def pending_ids(self) -> set[str]:
        """Card ids not yet confirmed by the remote store."""
        return set(self._dirty)

    @contextmanager
    def _card_lock(self, card_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(card_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[card_id]

    def _set_pending(self, card_id: str, pending: bool) -> None:
        if pending:
            self._dirty.add(card_id)
        else:
            self._dirty.discard(card_id)
        self.local.mark_pending(card_id, pending)

    def _remote_failed(self, action: str, error: PersistenceFailed) -> None:
        logger.warning(f"Remote {action} failed, keeping local copy: {error}")
        if error.not_found:
            logger.warning("Remote store not found; disabling it for this process")
            self._remote_active = False

    # =========================================================================
    # Cards
    # =========================================================================

    def load_cards(self, language: Language | None = None) -> list[Card]:
        if self._remote_active:
            try:
                remote_cards = self.remote.load_cards(language)
            except PersistenceFailed as e:
                self._remote_failed("card fetch", e)
            else:
                self._mirror_cards(remote_cards, language)
        return self.local.load_cards(language)

    def _mirror_cards(self, remote_cards: list[Card], language: Language | None) -> None:
        """Make the local store match the remote one, except for pending ids."""
        remote_ids = {c.id for c in remote_cards}
        for card in remote_cards:
            with self._card_lock(card.id):
                if card.id not in self._dirty:
                    self.local.upsert_card(card)

        for card in self.local.load_cards(language):
            if card.id in remote_ids:
                continue
            with self._card_lock(card.id):
                if card.id not in self._dirty:
                    self.local.delete_card(card.id)

        logger.debug(f"Mirrored {len(remote_cards)} remote cards locally")

    def upsert_card(self, card: Card) -> None:
        with self._card_lock(card.id):
            self.local.upsert_card(card)
            self._set_pending(card.id, True)
            if not self._remote_active:
                return
            try:
                self.remote.upsert_card(card)
            except PersistenceFailed as e:
                self._remote_failed(f"save of card {card.id}", e)
            else:
                self._set_pending(card.id, False)

    def delete_card(self, card_id: str) -> None:
        with self._card_lock(card_id):
            self.local.delete_card(card_id)
            self._set_pending(card_id, True)
            if not self._remote_active:
                return
            try:
                self.remote.delete_card(card_id)
            except PersistenceFailed as e:
                self._remote_failed(f"delete of card {card_id}", e)
            else:
                self._set_pending(card_id, False)

    # =========================================================================
    # Exam History
    # =========================================================================

    def load_exam_history(self) -> list[ExamReport]:
        if self._remote_active:
            try:
                reports = self.remote.load_exam_history()
            except PersistenceFailed as e:
                self._remote_failed("history fetch", e)
            else:
                for report in reports:
                    self.local.append_exam_report(report)
        return self.local.load_exam_history()

    def append_exam_report(self, report: ExamReport) -> None:
        self.local.append_exam_report(report)
        if not self._remote_active:
            return
        try:
            self.remote.append_exam_report(report)
        except PersistenceFailed as e:
            self._remote_failed(f"save of exam report {report.id}", e)

    def close(self) -> None:
        self.local.close()
        if self.remote is not None:
            self.remote.close()
