"""File formats zotu recognizes: playable audio and embedded cover images."""

from __future__ import annotations

from pathlib import Path

AUDIO_EXTENSIONS = frozenset(
    {
        ".aac",
        ".aiff",
        ".alac",
        ".ape",
        ".flac",
        ".m4a",
        ".mka",
        ".mp2",
        ".mp3",
        ".oga",
        ".ogg",
        ".opus",
        ".vorbis",
        ".wav",
        ".wma",
    }
)

COVER_MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/webp": "webp",
}
# mutagen.mp4.MP4Cover.imageformat codes.
MP4_COVER_EXTENSIONS = {13: "jpg", 14: "png"}
DEFAULT_COVER_EXTENSION = "png"


def is_supported_audio_file(path: str | Path) -> bool:
    """Return whether `path` has one of the importable audio suffixes."""
    return Path(path).suffix.lower() in AUDIO_EXTENSIONS


def cover_extension(mime: str | None = None, mp4_format: int | None = None) -> str:
    """Pick the file extension for embedded art from its MIME or MP4 code."""
    if mp4_format is not None:
        return MP4_COVER_EXTENSIONS.get(mp4_format, DEFAULT_COVER_EXTENSION)
    return COVER_MIME_EXTENSIONS.get((mime or "").lower(), DEFAULT_COVER_EXTENSION)
