"""SQLite-backed catalog persistence: library rows plus favorite/history ids.

The public API is async but all DB work is synchronous and dispatched through
`run_blocking(...)` so the playback loop never waits on disk.
"""

from __future__ import annotations

import enum
import logging
import sqlite3
from collections.abc import Iterable
from pathlib import Path

from zotu.db.schema import create_schema
from zotu.models import UNKNOWN_ALBUM, UNKNOWN_ARTIST, Track
from zotu.services.catalog_store import MAX_HISTORY, CatalogStore
from zotu.services.sqlite_retry import run_with_sqlite_lock_retry
from zotu.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)


class Category(str, enum.Enum):
    """Persisted track collections; values are table names."""

    LIBRARY = "library"
    FAVORITE = "favorite"
    HISTORY = "history"


# Ordering column per id-only table.
_SEQ_COLUMN = {Category.FAVORITE: "added_seq", Category.HISTORY: "played_seq"}


class CatalogDatabase:
    """SQLite catalog store with async wrappers.

    Each async call uses a fresh SQLite connection to avoid cross-thread access.
    """

    def __init__(self, db_path: Path, *, history_limit: int = MAX_HISTORY) -> None:
        self._db_path = Path(db_path)
        self._history_limit = max(1, int(history_limit))

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        await run_blocking(self._initialize_sync)

    async def load_all_tracks(self) -> list[Track] | None:
        """Return every library row in insertion order, or None when empty."""
        return await run_blocking(self._load_all_tracks_sync)

    async def get_all_ids(self, category: Category | str) -> list[str]:
        return await run_blocking(self._get_all_ids_sync, Category(category))

    async def add_to_category(self, category: Category | str, track_id: str) -> bool:
        return await run_blocking(
            self._add_to_category_sync, Category(category), track_id
        )

    async def remove_from_category(
        self, category: Category | str, track_id: str
    ) -> bool:
        return await run_blocking(
            self._remove_from_category_sync, Category(category), track_id
        )

    async def clear_category(self, category: Category | str) -> int:
        return await run_blocking(self._clear_category_sync, Category(category))

    async def add_tracks(self, tracks: Iterable[Track]) -> int:
        """Insert tracks whose path is not stored yet; returns rows inserted."""
        return await run_blocking(self._add_tracks_sync, list(tracks))

    async def existing_paths(self) -> set[Path]:
        return await run_blocking(self._existing_paths_sync)

    async def count(self, category: Category | str = Category.LIBRARY) -> int:
        return await run_blocking(self._count_sync, Category(category))

    def _connect(self) -> sqlite3.Connection:
        """Create a fresh SQLite connection configured for concurrent app usage."""
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _initialize_sync(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            create_schema(conn)
            journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
            logger.info(
                "Catalog database ready at %s (journal_mode=%s)",
                self._db_path,
                journal_mode,
            )

    def _load_all_tracks_sync(self) -> list[Track] | None:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, title, artist, album, duration, path, cover_path
                FROM library
                ORDER BY added_at, rowid
                """
            ).fetchall()
        tracks = [_row_to_track(row) for row in rows]
        return tracks or None

    def _get_all_ids_sync(self, category: Category) -> list[str]:
        with self._connect() as conn:
            if category is Category.LIBRARY:
                rows = conn.execute("SELECT id FROM library ORDER BY rowid").fetchall()
            elif category is Category.HISTORY:
                rows = conn.execute(
                    "SELECT track_id FROM history ORDER BY played_seq DESC"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT track_id FROM favorite ORDER BY added_seq"
                ).fetchall()
        return [row[0] for row in rows]

    def _add_to_category_sync(self, category: Category, track_id: str) -> bool:
        if category is Category.LIBRARY:
            raise ValueError("Library rows are added with add_tracks().")
        table = category.value
        seq = _SEQ_COLUMN[category]
        # History re-adds move the row to the front; favorites keep first insert.
        verb = "INSERT OR IGNORE"
        if category is Category.HISTORY:
            verb = "INSERT OR REPLACE"

        def _op() -> bool:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"""
                    {verb} INTO {table} (track_id, {seq})
                    SELECT ?, (SELECT COALESCE(MAX({seq}), 0) + 1 FROM {table})
                    WHERE EXISTS (SELECT 1 FROM library WHERE id = ?)
                    """,
                    (track_id, track_id),
                )
                if category is Category.HISTORY:
                    conn.execute(
                        """
                        DELETE FROM history WHERE track_id NOT IN (
                            SELECT track_id FROM history
                            ORDER BY played_seq DESC LIMIT ?
                        )
                        """,
                        (self._history_limit,),
                    )
                return cursor.rowcount > 0

        return run_with_sqlite_lock_retry(_op, op_name=f"{table}.add")

    def _remove_from_category_sync(self, category: Category, track_id: str) -> bool:
        column = "id" if category is Category.LIBRARY else "track_id"

        def _op() -> bool:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {category.value} WHERE {column} = ?", (track_id,)
                )
                return cursor.rowcount > 0

        return run_with_sqlite_lock_retry(_op, op_name=f"{category.value}.remove")

    def _clear_category_sync(self, category: Category) -> int:
        def _op() -> int:
            with self._connect() as conn:
                cursor = conn.execute(f"DELETE FROM {category.value}")
                return cursor.rowcount

        removed = run_with_sqlite_lock_retry(_op, op_name=f"{category.value}.clear")
        logger.info("Cleared %d rows from %s.", removed, category.value)
        return removed

    def _add_tracks_sync(self, tracks: list[Track]) -> int:
        if not tracks:
            return 0
        rows = [
            (
                track.id,
                track.title,
                track.artist,
                track.album,
                int(track.duration),
                str(track.path),
                track.cover_path,
            )
            for track in tracks
        ]

        def _op() -> int:
            with self._connect() as conn:
                before = conn.total_changes
                conn.executemany(
                    """
                    INSERT OR IGNORE INTO library (
                        id, title, artist, album, duration, path, cover_path
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
                return conn.total_changes - before

        inserted = run_with_sqlite_lock_retry(_op, op_name="library.add_tracks")
        logger.info("Stored %d of %d tracks.", inserted, len(tracks))
        return inserted

    def _existing_paths_sync(self) -> set[Path]:
        with self._connect() as conn:
            rows = conn.execute("SELECT path FROM library").fetchall()
        return {Path(row[0]) for row in rows}

    def _count_sync(self, category: Category) -> int:
        with self._connect() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM {category.value}").fetchone()
        return int(row[0]) if row else 0


def _row_to_track(row: sqlite3.Row) -> Track:
    return Track(
        id=row["id"],
        title=row["title"],
        artist=row["artist"] or UNKNOWN_ARTIST,
        album=row["album"] or UNKNOWN_ALBUM,
        duration=int(row["duration"] or 0),
        path=Path(row["path"]),
        cover_path=row["cover_path"],
    )


async def load_catalog_store(db: CatalogDatabase) -> CatalogStore:
    """Build a `CatalogStore` from the persisted library, favorites and history."""
    library = await db.load_all_tracks()
    favorite_ids = await db.get_all_ids(Category.FAVORITE)
    history_ids = await db.get_all_ids(Category.HISTORY)
    return CatalogStore(library, favorite_ids, history_ids)
