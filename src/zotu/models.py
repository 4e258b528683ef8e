"""Immutable track value shared by the catalog, orderings, and the controller."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


@dataclass(frozen=True)
class Track:
    """Metadata record for one audio file.

    Tracks are created once (file scan or catalog load) and never mutated, so
    every collection may hold the same instance by reference.
    """

    id: str
    title: str
    artist: str
    album: str
    duration: int
    path: Path
    cover_path: str | None = None

    @classmethod
    def new(
        cls,
        path: Path,
        *,
        title: str | None = None,
        artist: str | None = None,
        album: str | None = None,
        duration: int = 0,
        cover_path: str | None = None,
        track_id: str | None = None,
    ) -> Track:
        """Build a track with a fresh identity and display-name fallbacks."""
        path = Path(path)
        return cls(
            id=track_id or str(uuid.uuid4()),
            title=_clean(title) or path.stem,
            artist=_clean(artist) or UNKNOWN_ARTIST,
            album=_clean(album) or UNKNOWN_ALBUM,
            duration=max(0, int(duration)),
            path=path,
            cover_path=cover_path,
        )

    def matches(self, query: str) -> bool:
        """Return whether title, artist or album contains `query` (case-insensitive)."""
        needle = query.strip().casefold()
        if not needle:
            return True
        return (
            needle in self.title.casefold()
            or needle in self.artist.casefold()
            or needle in self.album.casefold()
        )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
