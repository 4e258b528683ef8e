"""Tests for SQLite catalog persistence."""

from __future__ import annotations

import asyncio
import sqlite3

import pytest

from conftest import make_track
from zotu.db.schema import SCHEMA_VERSION, create_schema
from zotu.models import Track
from zotu.services.catalog_db import CatalogDatabase, Category, load_catalog_store


def _run(coro):
    return asyncio.run(coro)


def _db(tmp_path, **kwargs) -> CatalogDatabase:
    db = CatalogDatabase(tmp_path / "library.db", **kwargs)
    _run(db.initialize())
    return db


def test_initialize_creates_tables_and_version(tmp_path) -> None:
    db = _db(tmp_path)

    with sqlite3.connect(db.db_path) as conn:
        tables = {
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
        }
        version = conn.execute("PRAGMA user_version").fetchone()[0]
    assert {"library", "favorite", "history"} <= tables
    assert version == SCHEMA_VERSION


def test_initialize_is_idempotent(tmp_path) -> None:
    db = _db(tmp_path)
    _run(db.add_tracks([make_track("a")]))

    _run(db.initialize())

    assert _run(db.count()) == 1


def test_newer_schema_is_rejected() -> None:
    conn = sqlite3.connect(":memory:")
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
    with pytest.raises(RuntimeError, match="Unsupported database schema"):
        create_schema(conn)
    conn.close()


def test_empty_library_loads_as_none(tmp_path) -> None:
    db = _db(tmp_path)

    assert _run(db.load_all_tracks()) is None
    assert _run(db.get_all_ids(Category.FAVORITE)) == []


def test_add_tracks_round_trips_and_ignores_known_paths(tmp_path) -> None:
    db = _db(tmp_path)
    a, b = make_track("a"), make_track("b")

    assert _run(db.add_tracks([a, b])) == 2
    duplicate_path = Track(
        id="other-id",
        title="Other",
        artist="X",
        album="Y",
        duration=1,
        path=a.path,
    )
    assert _run(db.add_tracks([duplicate_path])) == 0

    loaded = _run(db.load_all_tracks())
    assert loaded == [a, b]
    assert _run(db.existing_paths()) == {a.path, b.path}
    assert _run(db.get_all_ids(Category.LIBRARY)) == [a.id, b.id]


def test_favorites_keep_insertion_order_and_ignore_unknown(tmp_path) -> None:
    db = _db(tmp_path)
    a, b = make_track("a"), make_track("b")
    _run(db.add_tracks([a, b]))

    assert _run(db.add_to_category(Category.FAVORITE, b.id)) is True
    assert _run(db.add_to_category("favorite", a.id)) is True
    assert _run(db.add_to_category(Category.FAVORITE, b.id)) is False
    assert _run(db.add_to_category(Category.FAVORITE, "ghost")) is False

    assert _run(db.get_all_ids(Category.FAVORITE)) == [b.id, a.id]
    assert _run(db.remove_from_category(Category.FAVORITE, b.id)) is True
    assert _run(db.remove_from_category(Category.FAVORITE, b.id)) is False
    assert _run(db.get_all_ids(Category.FAVORITE)) == [a.id]


def test_history_is_most_recent_first_and_bounded(tmp_path) -> None:
    db = _db(tmp_path, history_limit=2)
    a, b, c = (make_track(name) for name in "abc")
    _run(db.add_tracks([a, b, c]))

    for track in (a, b, a):
        _run(db.add_to_category(Category.HISTORY, track.id))
    assert _run(db.get_all_ids(Category.HISTORY)) == [a.id, b.id]

    _run(db.add_to_category(Category.HISTORY, c.id))
    assert _run(db.get_all_ids(Category.HISTORY)) == [c.id, a.id]
    assert _run(db.count(Category.HISTORY)) == 2

    assert _run(db.clear_category(Category.HISTORY)) == 2
    assert _run(db.get_all_ids(Category.HISTORY)) == []


def test_library_rows_cannot_be_added_by_id(tmp_path) -> None:
    db = _db(tmp_path)

    with pytest.raises(ValueError):
        _run(db.add_to_category(Category.LIBRARY, "id-a"))


def test_removing_library_row_cascades(tmp_path) -> None:
    db = _db(tmp_path)
    a = make_track("a")
    _run(db.add_tracks([a]))
    _run(db.add_to_category(Category.FAVORITE, a.id))

    assert _run(db.remove_from_category(Category.LIBRARY, a.id)) is True

    assert _run(db.get_all_ids(Category.FAVORITE)) == []


def test_load_catalog_store_restores_views(tmp_path) -> None:
    db = _db(tmp_path)
    a, b, c = (make_track(name) for name in "abc")
    _run(db.add_tracks([a, b, c]))
    _run(db.add_to_category(Category.FAVORITE, c.id))
    _run(db.add_to_category(Category.HISTORY, a.id))
    _run(db.add_to_category(Category.HISTORY, b.id))

    store = _run(load_catalog_store(db))

    assert [track.id for track in store.library()] == [a.id, b.id, c.id]
    assert store.is_favorite(c.id)
    assert store.history_ids() == [b.id, a.id]


def test_migrates_version_one_database(tmp_path) -> None:
    path = tmp_path / "old.db"
    with sqlite3.connect(path) as conn:
        conn.execute(
            "CREATE TABLE library (id TEXT PRIMARY KEY, title TEXT NOT NULL, "
            "artist TEXT, album TEXT, duration INTEGER NOT NULL DEFAULT 0, "
            "path TEXT NOT NULL UNIQUE, cover_path TEXT, "
            "added_at INTEGER NOT NULL DEFAULT 0)"
        )
        conn.execute("CREATE TABLE favorite (track_id TEXT PRIMARY KEY)")
        conn.execute("CREATE TABLE history (track_id TEXT PRIMARY KEY)")
        conn.execute(
            "INSERT INTO library (id, title, path) VALUES ('id-a', 'A', '/a.mp3')"
        )
        conn.execute("INSERT INTO history (track_id) VALUES ('id-a')")
        conn.execute("PRAGMA user_version = 1")
    conn.close()

    db = CatalogDatabase(path)
    _run(db.initialize())

    assert _run(db.get_all_ids(Category.HISTORY)) == ["id-a"]
    loaded = _run(db.load_all_tracks())
    assert loaded is not None
    assert loaded[0].artist == "Unknown Artist"
