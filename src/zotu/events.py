"""Cross-module event models for catalog, controller, and presentation signaling.

Events are plain frozen dataclasses. Producers hand them to a listener
callback; the core never depends on what observes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zotu.services.playback_controller import ControllerState, NowPlaying


@dataclass(frozen=True)
class FavoriteAdded:
    """Catalog event emitted after a track joins the favorites view."""

    track_id: str


@dataclass(frozen=True)
class FavoriteRemoved:
    """Catalog event emitted after a track leaves the favorites view."""

    track_id: str


@dataclass(frozen=True)
class HistoryAdded:
    """Catalog event emitted after a track is moved to the front of history."""

    track_id: str


@dataclass(frozen=True)
class HistoryCleared:
    """Catalog event emitted after the history view is emptied."""


@dataclass(frozen=True)
class LibraryUpdated:
    """Catalog event emitted after the canonical library is replaced."""

    size: int
    purged: int = 0


@dataclass(frozen=True)
class PlayerStateChanged:
    """Controller event emitted when the effective playback state changes."""

    state: ControllerState


@dataclass(frozen=True)
class TrackChanged:
    """Controller event emitted when a new track starts playing."""

    now_playing: NowPlaying


@dataclass(frozen=True)
class PlaybackFailed:
    """Controller event emitted when a track could not be decoded or started."""

    path: str
    reason: str
