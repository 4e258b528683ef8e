"""Audio output backed by a libVLC media player (python-vlc)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from zotu.media_formats import is_supported_audio_file
from zotu.services.audio_output import AudioDeviceError, DecodeError

logger = logging.getLogger(__name__)


class VLCAudioOutput:
    """Queue-style sink over a single libVLC `MediaPlayer`.

    libVLC plays one media at a time, so queued sources are handed to the
    player as the previous one ends. Ended/error states count as drained.
    """

    def __init__(self, *, volume: float = 1.0, instance: Any | None = None) -> None:
        try:
            import vlc
        except Exception as exc:  # pragma: no cover - depends on VLC install
            raise AudioDeviceError(
                "python-vlc unavailable. Ensure VLC/libVLC is installed."
            ) from exc
        self._vlc = vlc
        if instance is None:
            instance = vlc.Instance("--no-video", "--quiet")
        if instance is None:
            raise AudioDeviceError("libVLC could not open an audio device.")
        self._instance = instance
        self._player = instance.media_player_new()
        if self._player is None:
            raise AudioDeviceError("libVLC could not create a media player.")
        self._queue: list[Any] = []
        self._current: Any | None = None
        self._paused = False
        self.set_volume(volume)

    def decode(self, path: Path) -> Any:
        """Open `path` as libVLC media; raises `DecodeError` when unusable."""
        path = Path(path)
        if not path.is_file():
            raise DecodeError(f"File not found: {path}")
        if not is_supported_audio_file(path):
            raise DecodeError(f"Unsupported audio format: {path.suffix or path.name}")
        media = self._instance.media_new_path(str(path))
        if media is None:
            raise DecodeError(f"libVLC could not open {path}")
        return media

    def set_volume(self, volume: float) -> None:
        level = int(round(max(0.0, min(1.0, float(volume))) * 100))
        self._player.audio_set_volume(level)

    def stop(self) -> None:
        self._queue.clear()
        self._current = None
        self._player.stop()

    def play(self) -> None:
        self._paused = False
        if self._current is None:
            return
        if self._state_name() == "paused":
            self._player.set_pause(0)
        else:
            self._player.play()

    def pause(self) -> None:
        self._paused = True
        if self._current is not None:
            self._player.set_pause(1)

    def is_paused(self) -> bool:
        return self._paused

    def queue_empty(self) -> bool:
        if self._current is not None and self._state_name() in {"ended", "error"}:
            self._current = None
            self._advance()
        return self._current is None

    def append(self, source: Any) -> None:
        self._queue.append(source)
        if self._current is None:
            self._advance()

    def release(self) -> None:
        """Free libVLC resources; the output is unusable afterwards."""
        self.stop()
        self._player.release()
        self._instance.release()

    def _advance(self) -> None:
        if not self._queue:
            return
        self._current = self._queue.pop(0)
        self._player.set_media(self._current)
        if not self._paused and self._player.play() == -1:
            logger.warning("libVLC refused to start queued media.")

    def _state_name(self) -> str:
        try:
            state = self._player.get_state()
        except Exception:
            return "error"
        return str(getattr(state, "name", state)).lower().rsplit(".", 1)[-1]
