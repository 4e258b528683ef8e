"""Tag extraction and folder import backed by mutagen."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mutagen import File as MutagenFile
from mutagen.flac import Picture

from zotu.media_formats import cover_extension, is_supported_audio_file
from zotu.models import Track
from zotu.services.catalog_db import CatalogDatabase
from zotu.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)


class MetadataError(Exception):
    """Raised when a file cannot be parsed as audio."""


@dataclass(frozen=True)
class ImportFailure:
    path: Path
    reason: str


@dataclass
class ImportReport:
    """Outcome of one folder import; per-file failures never abort the batch."""

    folder: Path
    scanned: int = 0
    skipped: int = 0
    imported: list[Track] = field(default_factory=list)
    failures: list[ImportFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def scan_audio_files(folder: Path) -> list[Path]:
    """Recursively list supported audio files under `folder`, sorted by path."""
    root = Path(folder).expanduser().resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    found: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            path = Path(dirpath) / name
            if is_supported_audio_file(path):
                found.append(path)
    found.sort()
    return found


def read_track(
    path: Path, cover_dir: Path | None = None, *, track_id: str | None = None
) -> Track:
    """Build a `Track` from tags, writing embedded cover art into `cover_dir`."""
    path = Path(path)
    try:
        audio = MutagenFile(path, easy=True)
    except Exception as exc:
        raise MetadataError(f"{path.name}: {exc}") from exc
    if audio is None:
        raise MetadataError(f"{path.name}: unsupported or unreadable file")
    tags = audio.tags or {}
    length = getattr(audio.info, "length", None)
    duration = int(length) if isinstance(length, (int, float)) and length > 0 else 0
    track = Track.new(
        path,
        title=_first_tag(tags, "title"),
        artist=_first_tag(tags, "artist"),
        album=_first_tag(tags, "album"),
        duration=duration,
        track_id=track_id,
    )
    if cover_dir is None:
        return track
    cover_path = _extract_cover(path, Path(cover_dir), track.id)
    if cover_path is None:
        return track
    return Track(
        id=track.id,
        title=track.title,
        artist=track.artist,
        album=track.album,
        duration=track.duration,
        path=track.path,
        cover_path=str(cover_path),
    )


class MetadataService:
    """Imports folders into the catalog database with bounded concurrency."""

    def __init__(
        self,
        db: CatalogDatabase,
        *,
        cover_dir: Path | None = None,
        concurrency: int = 4,
    ) -> None:
        self._db = db
        self._cover_dir = cover_dir
        self._semaphore = asyncio.Semaphore(max(1, int(concurrency)))

    async def import_folder(self, folder: Path) -> ImportReport:
        report = ImportReport(folder=Path(folder))
        paths = await run_blocking(scan_audio_files, report.folder)
        report.scanned = len(paths)
        known = await self._db.existing_paths()
        fresh = [path for path in paths if path not in known]
        report.skipped = len(paths) - len(fresh)
        results = await asyncio.gather(*(self._load_one(path) for path in fresh))
        for path, outcome in zip(fresh, results):
            if isinstance(outcome, Track):
                report.imported.append(outcome)
            else:
                report.failures.append(ImportFailure(path=path, reason=outcome))
        if report.imported:
            await self._db.add_tracks(report.imported)
        logger.info(
            "Imported %d tracks from %s (%d skipped, %d failed).",
            len(report.imported),
            report.folder,
            report.skipped,
            len(report.failures),
        )
        return report

    async def _load_one(self, path: Path) -> Track | str:
        async with self._semaphore:
            try:
                return await run_blocking(read_track, path, self._cover_dir)
            except Exception as exc:
                logger.warning("Skipping %s: %s", path, exc)
                return str(exc)


def _first_tag(tags: Any, key: str) -> str | None:
    try:
        value = tags.get(key)
    except Exception:
        return None
    if isinstance(value, list) and value:
        first = value[0]
        return str(first) if first is not None else None
    if isinstance(value, str):
        return value
    return None


def _extract_cover(path: Path, cover_dir: Path, track_id: str) -> Path | None:
    """Write the first embedded picture to `cover_dir/<track_id>.<ext>`."""
    try:
        audio = MutagenFile(path)
    except Exception:
        return None
    if audio is None:
        return None
    found = _find_picture(audio)
    if found is None:
        return None
    data, ext = found
    target = cover_dir / f"{track_id}.{ext}"
    try:
        cover_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as exc:
        logger.warning("Could not write cover for %s: %s", path, exc)
        return None
    return target


def _find_picture(audio: Any) -> tuple[bytes, str] | None:
    # FLAC keeps pictures outside the tag block.
    pictures = getattr(audio, "pictures", None)
    if pictures:
        picture = pictures[0]
        return bytes(picture.data), cover_extension(picture.mime)
    tags = audio.tags
    if tags is None:
        return None
    getall = getattr(tags, "getall", None)
    if callable(getall):
        frames = getall("APIC")
        if frames:
            return bytes(frames[0].data), cover_extension(frames[0].mime)
        return None
    covers = _tag_values(tags, "covr")
    if covers:
        cover = covers[0]
        ext = cover_extension(mp4_format=getattr(cover, "imageformat", 0))
        return bytes(cover), ext
    for encoded in _tag_values(tags, "metadata_block_picture"):
        try:
            picture = Picture(base64.b64decode(encoded))
        except Exception:
            continue
        return bytes(picture.data), cover_extension(picture.mime)
    return None


def _tag_values(tags: Any, key: str) -> list[Any]:
    try:
        values = tags.get(key)
    except Exception:
        return []
    if values is None:
        return []
    return list(values) if isinstance(values, list) else [values]
