"""
Unit tests for the local SQLite store.
"""

import pytest

from growfluent.srs.aggregator import ResultAggregator
from growfluent.srs.memory_model import advance
from growfluent.srs.models import DAY_MS, ExamQuestionResult, Language
from growfluent.storage.sqlite_store import SQLiteCardStore


@pytest.fixture
def store(tmp_path):
    store = SQLiteCardStore(tmp_path / "state.db")
    yield store
    store.close()


class TestCards:
    def test_empty(self, store):
        assert store.load_cards() == []
        assert store.count_cards() == 0

    def test_upsert_and_load(self, store, make_card):
        card = make_card("c1", enrichment={"explanation": "An idiom", "synonyms": []})

        store.upsert_card(card)

        assert store.load_cards() == [card]
        assert store.get_card("c1") == card

    def test_upsert_replaces_whole_card(self, store, make_card, now):
        card = make_card("c1")
        store.upsert_card(card)

        store.upsert_card(advance(card, True, now))

        loaded = store.get_card("c1")
        assert loaded.repetition_count == 1
        assert store.count_cards() == 1

    def test_filter_by_language_newest_first(self, store, make_card, now):
        store.upsert_card(make_card("old", created_at=now - 3 * DAY_MS))
        store.upsert_card(make_card("new", created_at=now))
        store.upsert_card(make_card("fr", language=Language.FRENCH))

        assert [c.id for c in store.load_cards(Language.ENGLISH)] == ["new", "old"]
        assert store.count_cards(Language.FRENCH) == 1

    def test_delete(self, store, make_card):
        store.upsert_card(make_card("c1"))

        store.delete_card("c1")
        store.delete_card("missing")

        assert store.get_card("c1") is None

    def test_survives_reopen(self, tmp_path, make_card):
        path = tmp_path / "state.db"
        first = SQLiteCardStore(path)
        first.upsert_card(make_card("c1"))
        first.close()

        second = SQLiteCardStore(path)
        try:
            assert [c.id for c in second.load_cards()] == ["c1"]
        finally:
            second.close()


class TestPendingIds:
    def test_mark_and_clear(self, store):
        store.mark_pending("c1", True)
        store.mark_pending("c1", True)
        store.mark_pending("c2", True)
        store.mark_pending("c2", False)

        assert store.load_pending_ids() == {"c1"}

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "state.db"
        first = SQLiteCardStore(path)
        first.mark_pending("c1", True)
        first.close()

        second = SQLiteCardStore(path)
        try:
            assert second.load_pending_ids() == {"c1"}
        finally:
            second.close()


class TestExamHistory:
    def test_append_is_idempotent(self, store, now):
        report = ResultAggregator().build_exam_report(
            [ExamQuestionResult(card_id="c1", is_correct=True, response_time_ms=2000)],
            Language.ENGLISH,
            2000,
            now,
        )

        store.append_exam_report(report)
        store.append_exam_report(report)

        assert store.load_exam_history() == [report]

    def test_most_recent_first(self, store, now):
        aggregator = ResultAggregator()
        results = [ExamQuestionResult(card_id="c1", is_correct=False, response_time_ms=1)]
        older = aggregator.build_exam_report(results, Language.ENGLISH, 1, now - DAY_MS)
        newer = aggregator.build_exam_report(results, Language.ENGLISH, 1, now)

        store.append_exam_report(older)
        store.append_exam_report(newer)

        assert [r.id for r in store.load_exam_history()] == [newer.id, older.id]
