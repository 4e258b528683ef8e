"""Tests for logging configuration and entrypoint wiring."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

import zotu.cli as cli_module
from zotu.logging_utils import LOG_FILE_NAME, JsonLogFormatter, setup_logging


def _flush_root_handlers() -> None:
    for handler in logging.getLogger().handlers:
        flush = getattr(handler, "flush", None)
        if callable(flush):
            flush()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in original_handlers:
            handler.close()
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)


def test_setup_logging_default_path_writes_json_lines(
    tmp_path, restore_root_logger
) -> None:
    log_path = setup_logging(log_dir=tmp_path, level="INFO")
    logger = logging.getLogger("zotu.test")
    logger.info("default-log-path", extra={"track_id": "t1", "path": Path("/a")})
    logger.debug("hidden")
    _flush_root_handlers()

    assert log_path == tmp_path / LOG_FILE_NAME
    lines = log_path.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [record["message"] for record in records] == ["default-log-path"]
    assert records[0]["level"] == "INFO"
    assert records[0]["logger"] == "zotu.test"
    assert records[0]["context"] == {"track_id": "t1", "path": "/a"}
    assert records[0]["timestamp"].endswith("Z")


def test_setup_logging_custom_log_file_and_replaces_handlers(
    tmp_path, restore_root_logger
) -> None:
    custom_path = tmp_path / "custom" / "player.log"
    setup_logging(log_dir=tmp_path, level="INFO")
    setup_logging(log_dir=tmp_path, level="DEBUG", log_file=custom_path)
    logging.getLogger("zotu.test").debug("custom-log-path")
    _flush_root_handlers()

    assert len(restore_root_logger.handlers) == 2
    assert restore_root_logger.level == logging.DEBUG
    assert "custom-log-path" in custom_path.read_text(encoding="utf-8")


def test_formatter_includes_exception_text() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.getLogger("zotu.test").makeRecord(
            "zotu.test",
            logging.ERROR,
            __file__,
            1,
            "failed",
            (),
            exc_info=sys.exc_info(),
        )

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["message"] == "failed"
    assert "ValueError: boom" in payload["exception"]
    assert "context" not in payload


def test_cli_main_passes_effective_level_and_log_file(monkeypatch, tmp_path) -> None:
    captured: dict[str, object] = {}

    def fake_setup_logging(*, log_dir: Path, level: str, log_file: Path | None):
        captured["log_dir"] = log_dir
        captured["level"] = level
        captured["log_file"] = log_file

    monkeypatch.setattr(cli_module, "setup_logging", fake_setup_logging)

    rc = cli_module.main(
        [
            "--verbose",
            "--quiet",
            "--backend",
            "fake",
            "--data-dir",
            str(tmp_path),
            "--log-file",
            str(tmp_path / "cli.log"),
            "list",
        ]
    )

    assert rc == 0
    assert captured["level"] == "WARNING"
    assert captured["log_file"] == tmp_path / "cli.log"
    assert captured["log_dir"] == tmp_path / "logs"


def test_cli_main_uses_saved_log_level_without_flags(monkeypatch, tmp_path) -> None:
    (tmp_path / "state.json").write_text('{"log_level": "debug"}', encoding="utf-8")
    captured: dict[str, object] = {}

    def fake_setup_logging(*, log_dir: Path, level: str, log_file: Path | None):
        captured["level"] = level

    monkeypatch.setattr(cli_module, "setup_logging", fake_setup_logging)

    rc = cli_module.main(["--backend", "fake", "--data-dir", str(tmp_path), "list"])

    assert rc == 0
    assert captured["level"] == "DEBUG"


def test_cli_main_returns_nonzero_when_logging_setup_fails(
    monkeypatch, tmp_path, capsys
) -> None:
    def fail_setup_logging(**kwargs):
        del kwargs
        raise OSError("cannot open log")

    monkeypatch.setattr(cli_module, "setup_logging", fail_setup_logging)

    rc = cli_module.main(["--data-dir", str(tmp_path), "list"])
    captured = capsys.readouterr()

    assert rc == 1
    assert "Unexpected error. Re-run with --verbose for details." in captured.err
