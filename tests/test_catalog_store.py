"""Tests for the in-memory catalog store."""

from __future__ import annotations

import logging

import pytest

from conftest import make_track
from zotu.events import (
    FavoriteAdded,
    FavoriteRemoved,
    HistoryAdded,
    HistoryCleared,
    LibraryUpdated,
)
from zotu.services.catalog_store import MAX_HISTORY, CatalogStore, CatalogView


def _ids(tracks) -> list[str]:
    return [track.id for track in tracks]


def test_favorite_membership_from_saved_ids() -> None:
    a, b, c = (make_track(name) for name in "abc")
    store = CatalogStore([a, b, c], favorite_ids=[b.id])

    assert store.is_favorite(b.id) is True
    assert store.is_favorite(a.id) is False
    assert store.is_favorite("unknown") is False


def test_unknown_saved_ids_are_dropped_at_load(caplog) -> None:
    a, b = make_track("a"), make_track("b")
    with caplog.at_level(logging.INFO):
        store = CatalogStore(
            [a, b],
            favorite_ids=["ghost", a.id, a.id],
            history_ids=[b.id, "ghost", a.id],
        )

    assert _ids(store.favorites()) == [a.id]
    assert store.favorite_ids() == frozenset({a.id})
    assert store.history_ids() == [b.id, a.id]
    assert "Dropped 2 unknown favorite ids" in caplog.text
    assert "Dropped 1 unknown history ids" in caplog.text


def test_dropped_history_ids_are_logged_without_favorites(caplog) -> None:
    a = make_track("a")
    with caplog.at_level(logging.INFO):
        store = CatalogStore([a], history_ids=["ghost", a.id, "gone", a.id])

    assert store.history_ids() == [a.id]
    assert "Dropped 3 unknown history ids" in caplog.text
    assert "favorite ids" not in caplog.text


def test_add_to_favorites_rejects_duplicates_and_unknown_ids() -> None:
    a, b = make_track("a"), make_track("b")
    store = CatalogStore([a, b])
    events: list[object] = []
    store.subscribe(events.append)

    assert store.add_to_favorites(a.id) is True
    assert store.add_to_favorites(a.id) is False
    assert store.add_to_favorites("missing") is False
    assert _ids(store.favorites()) == [a.id]
    assert events == [FavoriteAdded(a.id)]


def test_remove_and_toggle_favorite() -> None:
    a, b = make_track("a"), make_track("b")
    store = CatalogStore([a, b], favorite_ids=[a.id, b.id])
    events: list[object] = []
    store.subscribe(events.append)

    assert store.remove_from_favorites("missing") is False
    assert store.remove_from_favorites(a.id) is True
    assert store.remove_from_favorites(a.id) is False
    assert store.toggle_favorite(a.id) is True
    assert store.toggle_favorite(b.id) is True

    assert _ids(store.favorites()) == [a.id]
    assert events == [FavoriteRemoved(a.id), FavoriteAdded(a.id), FavoriteRemoved(b.id)]


def test_repeat_history_insert_moves_entry_to_front() -> None:
    a, b = make_track("a"), make_track("b")
    store = CatalogStore([a, b])

    assert store.add_to_history(a.id) is True
    assert store.add_to_history(b.id) is True
    assert store.add_to_history(b.id) is True
    assert store.history_ids() == [b.id, a.id]
    assert store.add_to_history(a.id) is True
    assert store.history_ids() == [a.id, b.id]


def test_history_unknown_id_is_noop() -> None:
    store = CatalogStore([make_track("a")])
    events: list[object] = []
    store.subscribe(events.append)

    assert store.add_to_history("missing") is False
    assert store.history() == ()
    assert events == []


def test_history_evicts_oldest_beyond_bound() -> None:
    library = [make_track(str(index)) for index in range(MAX_HISTORY + 5)]
    store = CatalogStore(library)

    for track in library:
        store.add_to_history(track.id)

    history = store.history_ids()
    assert len(history) == MAX_HISTORY
    assert history[0] == library[-1].id
    assert library[0].id not in history
    # An evicted id may be re-added as a fresh entry.
    assert store.add_to_history(library[0].id) is True
    assert store.history_ids()[0] == library[0].id
    assert len(store.history_ids()) == MAX_HISTORY


def test_clear_history_emits_event() -> None:
    a = make_track("a")
    store = CatalogStore([a], history_ids=[a.id])
    events: list[object] = []
    store.subscribe(events.append)

    store.clear_history()

    assert store.history() == ()
    assert store.add_to_history(a.id) is True
    assert events == [HistoryCleared(), HistoryAdded(a.id)]


def test_update_library_purges_stale_entries_and_rebinds() -> None:
    a, b, c = (make_track(name) for name in "abc")
    store = CatalogStore([a, b, c], favorite_ids=[a.id, b.id], history_ids=[c.id, b.id])
    events: list[object] = []
    store.subscribe(events.append)

    renamed_b = make_track("b", duration=999)
    store.update_library([renamed_b, c])

    assert _ids(store.library()) == [b.id, c.id]
    assert _ids(store.favorites()) == [b.id]
    assert store.favorites()[0].duration == 999
    assert store.history_ids() == [c.id, b.id]
    assert store.is_favorite(a.id) is False
    assert store.get_by_id(a.id) is None
    assert events == [LibraryUpdated(size=2, purged=1)]


def test_update_library_with_none_empties_everything() -> None:
    a = make_track("a")
    store = CatalogStore([a], favorite_ids=[a.id], history_ids=[a.id])

    store.update_library(None)

    assert len(store) == 0
    assert store.favorites() == ()
    assert store.history() == ()


def test_views_are_snapshots() -> None:
    a, b = make_track("a"), make_track("b")
    store = CatalogStore([a, b])
    favorites_before = store.favorites()

    store.add_to_favorites(a.id)

    assert favorites_before == ()
    assert _ids(store.favorites()) == [a.id]


def test_tracks_for_each_view() -> None:
    a = make_track("a", artist="Nina Simone")
    b = make_track("b", artist="Miles Davis")
    store = CatalogStore([a, b], favorite_ids=[b.id], history_ids=[a.id])

    assert _ids(store.tracks_for(CatalogView.LIBRARY)) == [a.id, b.id]
    assert _ids(store.tracks_for("favorite")) == [b.id]
    assert _ids(store.tracks_for(CatalogView.HISTORY)) == [a.id]
    assert _ids(store.tracks_for(CatalogView.SEARCH, "miles")) == [b.id]
    assert _ids(store.tracks_for(CatalogView.SEARCH, "  ")) == [a.id, b.id]
    with pytest.raises(ValueError):
        store.tracks_for("playlists")


def test_listener_failure_does_not_break_mutation(caplog) -> None:
    a = make_track("a")
    store = CatalogStore([a])

    def broken(_event: object) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    with caplog.at_level(logging.ERROR):
        assert store.add_to_favorites(a.id) is True
    assert store.is_favorite(a.id)
    assert "Catalog listener failed" in caplog.text


def test_unsubscribe_stops_notifications() -> None:
    a = make_track("a")
    store = CatalogStore([a])
    events: list[object] = []
    unsubscribe = store.subscribe(events.append)

    unsubscribe()
    unsubscribe()
    store.add_to_favorites(a.id)

    assert events == []


def test_duplicate_library_ids_resolve_to_first_occurrence() -> None:
    first = make_track("a")
    second = make_track("a", duration=7)
    store = CatalogStore([first, second])

    assert store.get_by_id(first.id) is first
