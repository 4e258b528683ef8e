"""Navigation state machine driving the single audio output.

`PlaybackController` is synchronous: every public method runs to completion
and assumes exclusive access. The embedding runtime (see `PlayerService`)
serializes user controls and the periodic `check_and_auto_next()` tick.

Navigation keeps two coordinate spaces. Sequential positions index the
ordering's natural order (List/Single); shuffle positions index its random
permutation (Random). A browser-style history of visited sequential
positions backs `next()`/`previous()`: moving inside the recorded window
replays entries, while any new navigation away from the tail truncates the
forward branch before appending.
"""

from __future__ import annotations

import enum
import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from zotu.events import PlaybackFailed, PlayerStateChanged, TrackChanged
from zotu.models import Track
from zotu.services.audio_output import AudioOutput, DecodeError, Decoder
from zotu.services.playback_ordering import PlaybackOrdering

logger = logging.getLogger(__name__)

MAX_NAVIGATION_HISTORY = 500


class LoopMode(str, enum.Enum):
    LIST = "list"
    SINGLE = "single"
    RANDOM = "random"

    def next(self) -> LoopMode:
        """Cycle List -> Single -> Random -> List."""
        if self is LoopMode.LIST:
            return LoopMode.SINGLE
        if self is LoopMode.SINGLE:
            return LoopMode.RANDOM
        return LoopMode.LIST


class PlayState(str, enum.Enum):
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class NowPlaying:
    """Display snapshot of the active track, decoupled from the live catalog."""

    id: str
    title: str
    artist: str
    album: str
    duration: int
    path: Path

    @classmethod
    def from_track(cls, track: Track) -> NowPlaying:
        return cls(
            id=track.id,
            title=track.title,
            artist=track.artist,
            album=track.album,
            duration=track.duration,
            path=track.path,
        )


@dataclass(frozen=True)
class ControllerState:
    """Serializable snapshot of controller state exposed to observers."""

    now_playing: NowPlaying | None = None
    play_state: PlayState = PlayState.PAUSED
    loop_mode: LoopMode = LoopMode.LIST
    sequential_position: int | None = None
    shuffle_position: int | None = None
    playlist_len: int = 0
    history: tuple[int, ...] = ()
    history_cursor: int | None = None


class PlaybackController:
    """Owns the current ordering, navigation history and the audio output."""

    def __init__(
        self,
        output: AudioOutput,
        decoder: Decoder,
        *,
        emit_event: Callable[[object], None] | None = None,
        rng: random.Random | None = None,
        loop_mode: LoopMode = LoopMode.LIST,
        max_history: int = MAX_NAVIGATION_HISTORY,
    ) -> None:
        if max_history < 1:
            raise ValueError("max_history must be >= 1")
        self._output = output
        self._decoder = decoder
        self._emit_event = emit_event
        self._rng = rng or random.Random()
        self._max_history = max_history
        self._ordering: PlaybackOrdering | None = None
        self._sequential_position: int | None = None
        self._shuffle_position: int | None = None
        self._now_playing: NowPlaying | None = None
        self._loop_mode = LoopMode(loop_mode)
        self._play_state = PlayState.PAUSED
        self._history: list[int] = []
        self._history_cursor: int | None = None

    # Queries

    @property
    def now_playing(self) -> NowPlaying | None:
        return self._now_playing

    @property
    def loop_mode(self) -> LoopMode:
        return self._loop_mode

    @property
    def play_state(self) -> PlayState:
        return self._play_state

    @property
    def sequential_position(self) -> int | None:
        return self._sequential_position

    @property
    def shuffle_position(self) -> int | None:
        return self._shuffle_position

    @property
    def ordering(self) -> PlaybackOrdering | None:
        return self._ordering

    @property
    def history(self) -> tuple[int, ...]:
        return tuple(self._history)

    @property
    def history_cursor(self) -> int | None:
        return self._history_cursor

    @property
    def has_playlist(self) -> bool:
        return self._ordering is not None

    @property
    def playlist_len(self) -> int:
        return len(self._ordering) if self._ordering is not None else 0

    @property
    def can_go_back(self) -> bool:
        return self._history_cursor is not None and self._history_cursor > 0

    @property
    def can_go_forward(self) -> bool:
        return (
            self._history_cursor is not None
            and self._history_cursor < len(self._history) - 1
        )

    def is_playing(self) -> bool:
        return self._play_state is PlayState.PLAYING

    def is_paused(self) -> bool:
        return self._play_state is PlayState.PAUSED

    def snapshot(self) -> ControllerState:
        return ControllerState(
            now_playing=self._now_playing,
            play_state=self._play_state,
            loop_mode=self._loop_mode,
            sequential_position=self._sequential_position,
            shuffle_position=self._shuffle_position,
            playlist_len=self.playlist_len,
            history=tuple(self._history),
            history_cursor=self._history_cursor,
        )

    # Playlist

    def set_playlist(self, items: Iterable[Track]) -> None:
        """Replace the active ordering; playback and `now_playing` are untouched.

        Positions from the previous ordering are meaningless in the new one, so
        the current track is re-located by identity and navigation history
        restarts from it (or from nothing when it is not part of `items`).
        """
        ordering = PlaybackOrdering.build(items, rng=self._rng)
        if self._loop_mode is LoopMode.RANDOM:
            ordering.shuffle()
        self._ordering = ordering
        position = (
            ordering.position_of(self._now_playing.id)
            if self._now_playing is not None
            else None
        )
        self._sequential_position = position
        self._shuffle_position = (
            ordering.shuffle_position_of(position) if position is not None else None
        )
        self._history = [position] if position is not None else []
        self._history_cursor = 0 if position is not None else None
        logger.debug("Playlist set with %d items.", len(ordering))
        self._notify()

    # Loop mode

    def set_loop_mode(self, mode: LoopMode | str) -> None:
        self._loop_mode = LoopMode(mode)
        if self._loop_mode is LoopMode.RANDOM and self._ordering is not None:
            self._ordering.shuffle()
            # Absent when nothing is current: the next navigation starts at 0.
            self._shuffle_position = (
                self._ordering.shuffle_position_of(self._sequential_position)
                if self._sequential_position is not None
                else None
            )
        self._notify()

    def toggle_loop_mode(self) -> None:
        self.set_loop_mode(self._loop_mode.next())

    # Transport

    def play_track(self, track: Track) -> None:
        """Play `track`, syncing positions when it belongs to the ordering.

        A track outside the ordering still plays ("play once"); positions and
        history keep describing the ordering, so `now_playing` may then differ
        from the track at `sequential_position`.
        """
        ordering = self._ordering
        position = ordering.position_of(track.id) if ordering is not None else None
        if ordering is not None and position is not None:
            self._sequential_position = position
            if self._loop_mode is LoopMode.RANDOM:
                self._shuffle_position = ordering.shuffle_position_of(position)
            self._push_history(position)
        self._start(track)
        self._notify()

    def toggle_play(self) -> None:
        if self._now_playing is None:
            return
        if self._play_state is PlayState.PLAYING:
            self.pause()
        else:
            self.play()

    def play(self) -> None:
        if self._now_playing is None:
            return
        self._output.play()
        self._play_state = PlayState.PLAYING
        self._notify()

    def pause(self) -> None:
        if self._now_playing is None:
            return
        self._output.pause()
        self._play_state = PlayState.PAUSED
        self._notify()

    def clear(self) -> None:
        """Stop output and forget the current track and navigation history."""
        self._output.stop()
        self._now_playing = None
        self._play_state = PlayState.PAUSED
        self._sequential_position = None
        self._shuffle_position = None
        self._history = []
        self._history_cursor = None
        self._notify()

    def next(self) -> None:
        if self.can_go_forward:
            assert self._history_cursor is not None
            self._history_cursor += 1
            self._play_position(self._history[self._history_cursor])
            self._notify()
            return
        self._advance(1)

    def previous(self) -> None:
        if self.can_go_back:
            assert self._history_cursor is not None
            self._history_cursor -= 1
            self._play_position(self._history[self._history_cursor])
            self._notify()
            return
        # Stepping back past the first entry only records into an empty history.
        self._advance(-1, record=not self._history)

    def check_and_auto_next(self) -> None:
        """Advance when the output drained while playing; called by a timer.

        Single mode re-queues the current source without history bookkeeping.
        List/Random always compute a forward step and append it to history,
        never replaying through the history window.
        """
        if self._play_state is not PlayState.PLAYING:
            return
        if not self._output.queue_empty():
            return
        if self._loop_mode is LoopMode.SINGLE:
            self._replay_current()
            return
        self._advance(1)

    # Internals

    def _advance(self, direction: int, *, record: bool = True) -> None:
        target = self._computed_target(direction)
        if target is None:
            return
        if record:
            self._push_history(target)
        self._play_position(target)
        self._notify()

    def _computed_target(self, direction: int) -> int | None:
        ordering = self._ordering
        if ordering is None or len(ordering) == 0:
            return None
        size = len(ordering)
        if self._loop_mode is LoopMode.SINGLE:
            return self._sequential_position
        if self._loop_mode is LoopMode.LIST:
            if self._sequential_position is None:
                return 0
            return (self._sequential_position + direction) % size
        if self._shuffle_position is None:
            shuffle_position = 0
        else:
            shuffle_position = (self._shuffle_position + direction) % size
        self._shuffle_position = shuffle_position
        return ordering.shuffle_target(shuffle_position)

    def _push_history(self, position: int) -> None:
        if self.can_go_forward:
            assert self._history_cursor is not None
            del self._history[self._history_cursor + 1 :]
        self._history.append(position)
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]
        self._history_cursor = len(self._history) - 1

    def _play_position(self, position: int) -> bool:
        ordering = self._ordering
        if ordering is None:
            return False
        track = ordering.get(position)
        if track is None:
            return False
        self._sequential_position = position
        if self._loop_mode is LoopMode.RANDOM:
            self._shuffle_position = ordering.shuffle_position_of(position)
        return self._start(track)

    def _start(self, track: Track) -> bool:
        """Stop the output, decode `track` and queue it; False on failure."""
        self._output.stop()
        try:
            source = self._decoder(track.path)
        except (DecodeError, OSError) as exc:
            logger.warning("Failed to start playback for %s: %s", track.path, exc)
            self._emit(PlaybackFailed(path=str(track.path), reason=str(exc)))
            return False
        self._output.append(source)
        self._output.play()
        self._now_playing = NowPlaying.from_track(track)
        self._play_state = PlayState.PLAYING
        logger.info("Now playing %s - %s", track.artist, track.title)
        self._emit(TrackChanged(self._now_playing))
        return True

    def _replay_current(self) -> None:
        current = self._now_playing
        if current is None:
            return
        try:
            source = self._decoder(current.path)
        except (DecodeError, OSError) as exc:
            logger.warning("Failed to replay %s: %s", current.path, exc)
            self._play_state = PlayState.PAUSED
            self._emit(PlaybackFailed(path=str(current.path), reason=str(exc)))
            self._notify()
            return
        self._output.append(source)

    def _notify(self) -> None:
        self._emit(PlayerStateChanged(self.snapshot()))

    def _emit(self, event: object) -> None:
        if self._emit_event is None:
            return
        try:
            self._emit_event(event)
        except Exception:
            logger.exception("Controller listener failed for %r", event)
