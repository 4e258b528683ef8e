"""SQLite schema for the track catalog.

`PRAGMA user_version` is the source of truth for migration state. Each step is
idempotent within its version.
"""

from __future__ import annotations

import sqlite3

SCHEMA_VERSION = 2

SCHEMA_V1_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS library (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        artist TEXT,
        album TEXT,
        duration INTEGER NOT NULL DEFAULT 0,
        path TEXT NOT NULL UNIQUE,
        cover_path TEXT,
        added_at INTEGER NOT NULL DEFAULT (strftime('%s','now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS favorite (
        track_id TEXT PRIMARY KEY,
        FOREIGN KEY(track_id) REFERENCES library(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS history (
        track_id TEXT PRIMARY KEY,
        FOREIGN KEY(track_id) REFERENCES library(id) ON DELETE CASCADE
    )
    """,
]


def create_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate schema to `SCHEMA_VERSION` in the supplied connection."""
    version = conn.execute("PRAGMA user_version").fetchone()[0]
    if version > SCHEMA_VERSION:
        raise RuntimeError(
            "Unsupported database schema version.\n"
            f"Likely cause: database version {version} is newer than "
            f"supported version {SCHEMA_VERSION}.\n"
            "Next step: run a newer zotu build against this database."
        )
    if version == 0:
        for statement in SCHEMA_V1_STATEMENTS:
            conn.execute(statement)
        conn.execute("PRAGMA user_version = 1")
        version = 1
    if version == 1:
        _migrate_v1_to_v2(conn)
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")


def _migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    """Order favorites by insertion and history by last listen."""
    columns = {row[1] for row in conn.execute("PRAGMA table_info(favorite)")}
    if "added_seq" not in columns:
        conn.execute("ALTER TABLE favorite ADD COLUMN added_seq INTEGER")
        conn.execute("UPDATE favorite SET added_seq = rowid")
    columns = {row[1] for row in conn.execute("PRAGMA table_info(history)")}
    if "played_seq" not in columns:
        conn.execute("ALTER TABLE history ADD COLUMN played_seq INTEGER")
        conn.execute("UPDATE history SET played_seq = rowid")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_favorite_seq ON favorite(added_seq)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_history_seq ON history(played_seq)"
    )
