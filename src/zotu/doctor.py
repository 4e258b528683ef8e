"""Environment diagnostics for tag reading, audio output and storage."""

from __future__ import annotations

import importlib
import sqlite3
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

DoctorStatus = Literal["ok", "missing", "error"]


@dataclass(frozen=True)
class DoctorCheck:
    """One readiness check result."""

    name: str
    status: DoctorStatus
    required: bool
    detail: str
    hint: str | None = None


@dataclass(frozen=True)
class DoctorReport:
    backend: str
    checks: list[DoctorCheck]

    @property
    def exit_code(self) -> int:
        """Return 2 when any required check failed or is missing."""
        for check in self.checks:
            if check.required and check.status != "ok":
                return 2
        return 0


def run_doctor(backend: str, data_dir: Path | None = None) -> DoctorReport:
    checks = [
        probe_mutagen(),
        probe_vlc(required=backend == "vlc"),
        probe_sqlite(),
    ]
    if data_dir is not None:
        checks.append(probe_writable_dir(data_dir))
    return DoctorReport(backend=backend, checks=checks)


def render_report(report: DoctorReport) -> str:
    lines = [f"zotu doctor (backend={report.backend})", ""]
    for check in report.checks:
        state = _status_token(check.status)
        req = "required" if check.required else "optional"
        lines.append(f"{state} {check.name:<11} [{req}] {check.detail}")
        if check.hint:
            lines.append(f"      hint: {check.hint}")
    lines.append("")
    lines.append("Result: OK" if report.exit_code == 0 else "Result: FAIL")
    return "\n".join(lines)


def probe_mutagen() -> DoctorCheck:
    """Verify the tag reader used by folder imports is importable."""
    try:
        module = importlib.import_module("mutagen")
    except Exception as exc:
        return DoctorCheck(
            name="mutagen",
            status="missing",
            required=True,
            detail=f"not importable ({exc.__class__.__name__})",
            hint="Install Python dependencies (pip install zotu).",
        )
    version = getattr(module, "version_string", None)
    detail = f"importable ({version})" if version else "importable"
    return DoctorCheck(name="mutagen", status="ok", required=True, detail=detail)


def probe_vlc(*, required: bool) -> DoctorCheck:
    """Verify python-vlc imports and libVLC can create a media player."""
    try:
        vlc = importlib.import_module("vlc")
    except Exception as exc:
        return DoctorCheck(
            name="vlc/libvlc",
            status="missing",
            required=required,
            detail=f"python-vlc import failed ({exc.__class__.__name__})",
            hint="Install VLC/libVLC and ensure python-vlc can locate libVLC.",
        )
    version = getattr(vlc, "__version__", "unknown")
    try:
        instance = vlc.Instance("--no-video", "--quiet")
        if instance is None or instance.media_player_new() is None:
            raise RuntimeError("no instance")
    except Exception as exc:
        return DoctorCheck(
            name="vlc/libvlc",
            status="error",
            required=required,
            detail=(
                f"python-vlc {version}; libVLC runtime unavailable "
                f"({exc.__class__.__name__})"
            ),
            hint="Install VLC/libVLC or run with --backend fake.",
        )
    return DoctorCheck(
        name="vlc/libvlc",
        status="ok",
        required=required,
        detail=f"python-vlc {version}; libVLC {_libvlc_version(vlc)}",
    )


def probe_sqlite() -> DoctorCheck:
    try:
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("PRAGMA user_version").fetchone()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        return DoctorCheck(
            name="sqlite",
            status="error",
            required=True,
            detail=f"in-memory database failed ({exc})",
        )
    return DoctorCheck(
        name="sqlite", status="ok", required=True, detail=sqlite3.sqlite_version
    )


def probe_writable_dir(path: Path) -> DoctorCheck:
    """Verify the catalog/cover directory accepts new files."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path):
            pass
    except OSError as exc:
        return DoctorCheck(
            name="data dir",
            status="error",
            required=True,
            detail=f"{path} not writable ({exc.__class__.__name__})",
            hint="Fix permissions on the zotu data directory.",
        )
    return DoctorCheck(name="data dir", status="ok", required=True, detail=str(path))


def _status_token(status: DoctorStatus) -> str:
    if status == "ok":
        return "[OK]"
    if status == "missing":
        return "[MISS]"
    return "[ERR]"


def _libvlc_version(vlc: object) -> str:
    getter = getattr(vlc, "libvlc_get_version", None)
    if not callable(getter):
        return "detected"
    try:
        release = getter()
    except Exception:
        return "detected"
    if isinstance(release, bytes):
        return release.decode("utf-8", errors="replace")
    return str(release) if release else "detected"
