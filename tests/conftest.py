"""Test configuration."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import zotu.services.catalog_db as catalog_db_module  # noqa: E402
import zotu.services.metadata_service as metadata_service_module  # noqa: E402
from zotu.models import Track  # noqa: E402


@pytest.fixture(autouse=True)
def run_blocking_inline(monkeypatch: pytest.MonkeyPatch):
    """Run blocking adapters inline in tests to avoid thread hangs in CI/sandbox."""

    async def _inline(func, /, *args, **kwargs):
        return func(*args, **kwargs)

    monkeypatch.setattr(catalog_db_module, "run_blocking", _inline)
    monkeypatch.setattr(metadata_service_module, "run_blocking", _inline)


def make_track(name: str, *, duration: int = 120, artist: str = "Artist") -> Track:
    """Deterministic track whose id and title derive from `name`."""
    return Track(
        id=f"id-{name}",
        title=f"Song {name}",
        artist=artist,
        album="Album",
        duration=duration,
        path=Path(f"/music/{name}.mp3"),
    )


@pytest.fixture
def tracks() -> list[Track]:
    return [make_track(name) for name in ("a", "b", "c", "d", "e")]
