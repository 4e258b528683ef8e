"""Fake audio output and decoder for deterministic testing."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from zotu.media_formats import is_supported_audio_file
from zotu.services.audio_output import DecodeError


@dataclass(frozen=True)
class FakeSource:
    """Decoded stand-in carrying the path and an optional play length."""

    path: Path
    duration_s: float | None = None


class FakeDecoder:
    """Decoder that accepts any supported suffix without touching the disk."""

    def __init__(
        self,
        *,
        durations: Mapping[Path, float] | None = None,
        default_duration_s: float | None = None,
        failing: set[Path] | None = None,
    ) -> None:
        self._durations = {Path(key): value for key, value in (durations or {}).items()}
        self._default_duration_s = default_duration_s
        self._failing = {Path(path) for path in failing or ()}
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> FakeSource:
        path = Path(path)
        self.calls.append(path)
        if path in self._failing:
            raise DecodeError(f"Cannot decode {path}")
        if not is_supported_audio_file(path):
            raise DecodeError(f"Unsupported audio format: {path.suffix or path.name}")
        duration = self._durations.get(path, self._default_duration_s)
        if duration is not None and duration <= 0:
            duration = self._default_duration_s
        return FakeSource(path=path, duration_s=duration)


class FakeAudioOutput:
    """In-memory sink that simulates queue draining.

    Sources with a duration drain on their own as the injected clock advances
    while unpaused; `finish_current()` drains the head source immediately.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._queue: list[FakeSource] = []
        self._paused = False
        self._elapsed_s = 0.0
        self._started_at: float | None = None
        self.appended: list[FakeSource] = []
        self.stop_calls = 0

    @property
    def current(self) -> FakeSource | None:
        self._drain()
        return self._queue[0] if self._queue else None

    def stop(self) -> None:
        self.stop_calls += 1
        self._queue.clear()
        self._reset_timing()

    def play(self) -> None:
        if not self._paused:
            return
        self._paused = False
        if self._queue:
            self._started_at = self._clock()

    def pause(self) -> None:
        if self._paused:
            return
        self._elapsed_s = self._current_elapsed()
        self._started_at = None
        self._paused = True

    def is_paused(self) -> bool:
        return self._paused

    def queue_empty(self) -> bool:
        self._drain()
        return not self._queue

    def append(self, source: FakeSource) -> None:
        self._queue.append(source)
        self.appended.append(source)
        if len(self._queue) == 1:
            self._reset_timing()

    def finish_current(self) -> None:
        """Drop the playing source as if it reached its end."""
        if self._queue:
            self._queue.pop(0)
            self._reset_timing()

    def _reset_timing(self) -> None:
        self._elapsed_s = 0.0
        self._started_at = None if self._paused or not self._queue else self._clock()

    def _current_elapsed(self) -> float:
        if self._started_at is None:
            return self._elapsed_s
        return self._elapsed_s + (self._clock() - self._started_at)

    def _drain(self) -> None:
        while self._queue:
            duration = self._queue[0].duration_s
            if duration is None or self._current_elapsed() < duration:
                return
            self._queue.pop(0)
            self._reset_timing()
