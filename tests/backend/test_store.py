import sqlite3
from datetime import UTC, datetime, timedelta

import pytest

from nihongo_srs.srs import CategoryKey, Level, SchedulingState, VocabularyDraft
from nihongo_srs.store import SRSSQLiteStore, StorageUnavailableError
from tests.helpers import NOW, make_drafts


def test_add_vocabulary_skips_existing_level_category_front(store: SRSSQLiteStore) -> None:
    assert store.add_vocabulary(make_drafts(3)) == 3
    again = make_drafts(4)

    assert store.add_vocabulary(again) == 1
    assert len(store.list_vocabulary(Level.N5)) == 4


def test_same_front_in_other_category_is_a_new_word(store: SRSSQLiteStore) -> None:
    store.add_vocabulary([VocabularyDraft(Level.N5, "Lesson01", "水", "water")])

    added = store.add_vocabulary([VocabularyDraft(Level.N5, "KANJI", "水", "water")])

    assert added == 1


def test_list_vocabulary_filters_level_and_categories(store: SRSSQLiteStore) -> None:
    store.add_vocabulary(make_drafts(2, category="Lesson01"))
    store.add_vocabulary(make_drafts(3, category="Lesson02"))
    store.add_vocabulary(make_drafts(4, level=Level.N4, category="Lesson01"))

    assert len(store.list_vocabulary(Level.N5)) == 5
    assert len(store.list_vocabulary(Level.N5, [])) == 5
    assert len(store.list_vocabulary(Level.N5, ["Lesson02"])) == 3
    assert len(store.list_vocabulary(Level.N5, ["Lesson02", "Lesson01"])) == 5
    items = store.list_vocabulary(Level.N4, ["Lesson01"])
    assert {item.level for item in items} == {Level.N4}
    assert items[0].created_at is not None


def test_put_progress_inserts_then_updates(store: SRSSQLiteStore) -> None:
    key = CategoryKey.of(["Lesson01"])
    fresh = SchedulingState(
        item_id=7,
        level=Level.N5,
        category_key=key,
        repetitions=1,
        interval=1,
        next_review=NOW + timedelta(days=1),
        last_reviewed=NOW,
    )

    saved = store.put_progress(fresh)
    assert saved.record_id is not None

    loaded = store.get_progress(Level.N5, key, 7)
    assert loaded == saved
    assert loaded.next_review.tzinfo is not None

    bumped = SchedulingState(
        item_id=7,
        level=Level.N5,
        category_key=key,
        repetitions=2,
        interval=6,
        ease_factor=2400,
        next_review=NOW + timedelta(days=6),
        last_reviewed=NOW,
        record_id=saved.record_id,
    )
    store.put_progress(bumped)

    records = store.query_progress(Level.N5, key)
    assert len(records) == 1
    assert records[0].repetitions == 2
    assert records[0].ease_factor == 2400
    assert records[0].record_id == saved.record_id


def test_progress_is_scoped_by_category_key(store: SRSSQLiteStore) -> None:
    single = CategoryKey.of(["Lesson01"])
    pair = CategoryKey.of(["Lesson02", "Lesson01"])
    store.put_progress(SchedulingState(item_id=1, level=Level.N5, category_key=single, repetitions=1))

    assert store.get_progress(Level.N5, pair, 1) is None
    assert store.get_progress(Level.N4, single, 1) is None
    assert store.get_progress(Level.N5, CategoryKey.of(["Lesson01"]), 1) is not None


def test_query_progress_restricts_to_item_ids(store: SRSSQLiteStore) -> None:
    key = CategoryKey()
    for item_id in (1, 2, 3):
        store.put_progress(SchedulingState(item_id=item_id, level=Level.N5, category_key=key))

    assert [s.item_id for s in store.query_progress(Level.N5, key, [1, 3])] == [1, 3]
    assert store.query_progress(Level.N5, key, []) == []
    assert len(store.list_level_progress(Level.N5)) == 3


def test_null_timestamps_round_trip(store: SRSSQLiteStore) -> None:
    saved = store.put_progress(SchedulingState(item_id=5, level=Level.N3))

    loaded = store.get_progress(Level.N3, CategoryKey(), 5)

    assert loaded == saved
    assert loaded.next_review is None
    assert loaded.last_reviewed is None


def test_reset_deletes_vocabulary_and_progress(store: SRSSQLiteStore) -> None:
    store.add_vocabulary(make_drafts(3))
    store.put_progress(SchedulingState(item_id=1, level=Level.N5))

    store.reset()

    assert store.list_vocabulary(Level.N5) == []
    assert store.list_level_progress(Level.N5) == []


def test_sqlite_errors_surface_as_storage_unavailable(
    store: SRSSQLiteStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _broken_connect() -> sqlite3.Connection:
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "_connect", _broken_connect)

    with pytest.raises(StorageUnavailableError):
        store.list_vocabulary(Level.N5)
    with pytest.raises(StorageUnavailableError):
        store.put_progress(SchedulingState(item_id=1, level=Level.N5, last_reviewed=datetime.now(UTC)))


def test_failed_batch_adds_no_words(store: SRSSQLiteStore) -> None:
    batch = [
        VocabularyDraft(Level.N5, "Lesson01", "水", "water"),
        VocabularyDraft("N9", "Lesson01", "火", "fire"),  # type: ignore[arg-type]
    ]

    with pytest.raises(ValueError):
        store.add_vocabulary(batch)

    assert store.list_vocabulary(Level.N5) == []


def test_reset_rolls_back_when_a_delete_fails(store: SRSSQLiteStore) -> None:
    store.add_vocabulary(make_drafts(2))
    store.put_progress(SchedulingState(item_id=1, level=Level.N5, repetitions=1))
    raw = sqlite3.connect(store.db_path)
    with raw:
        raw.execute(
            "CREATE TRIGGER keep_words BEFORE DELETE ON vocabulary_words "
            "BEGIN SELECT RAISE(ABORT, 'words are locked'); END;"
        )
    raw.close()

    with pytest.raises(StorageUnavailableError):
        store.reset()

    assert len(store.list_vocabulary(Level.N5)) == 2
    assert len(store.list_level_progress(Level.N5)) == 1


def test_put_progress_recreates_record_deleted_by_reset(store: SRSSQLiteStore) -> None:
    key = CategoryKey.of(["Lesson01"])
    saved = store.put_progress(SchedulingState(item_id=3, level=Level.N5, category_key=key))
    store.reset()

    again = store.put_progress(
        SchedulingState(
            item_id=3,
            level=Level.N5,
            category_key=key,
            repetitions=1,
            interval=1,
            next_review=NOW + timedelta(days=1),
            last_reviewed=NOW,
            record_id=saved.record_id,
        )
    )

    stored = store.get_progress(Level.N5, key, 3)
    assert stored is not None
    assert stored.repetitions == 1
    assert again.record_id == stored.record_id
