from __future__ import annotations

import json
import logging
from pathlib import Path

from quiz_site.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "quiz_site.test",
        log_dir=log_dir,
        level="INFO",
        filename="test.log",
    )

    logger.debug("not recorded")
    logger.info("Processed document", extra={"source": Path("a.md"), "count": 3})
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("Failed", extra={"kinds": {"incomplete", "placeholder"}})
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert log_path.parent == log_dir
    assert len(lines) == 2

    first = json.loads(lines[0])
    assert first["message"] == "Processed document"
    assert first["level"] == "INFO"
    assert first["extra"] == {"source": "a.md", "count": 3}

    last = json.loads(lines[-1])
    assert "ValueError: boom" in last["exception"]
    assert sorted(last["extra"]["kinds"]) == ["incomplete", "placeholder"]

    _close(logger)


def test_configure_logger_reuses_handlers(tmp_path):
    first, first_path = core_logging.configure_logger(
        "quiz_site.test_reuse", log_dir=tmp_path / "logs"
    )
    second, second_path = core_logging.configure_logger(
        "quiz_site.test_reuse", log_dir=tmp_path / "logs"
    )

    assert first is second
    assert first_path == second_path
    assert len(second.handlers) == 1

    moved, moved_path = core_logging.configure_logger(
        "quiz_site.test_reuse", log_dir=tmp_path / "other"
    )
    assert moved_path.parent == tmp_path / "other"
    assert len(moved.handlers) == 1

    _close(moved)


def test_configure_logger_verbose_toggles_console(tmp_path):
    logger, _ = core_logging.configure_logger(
        "quiz_site.test_verbose", log_dir=tmp_path / "logs", verbose=True
    )
    console = [
        h for h in logger.handlers if getattr(h, "_quiz_site_console", False)
    ]
    assert console

    logger, _ = core_logging.configure_logger(
        "quiz_site.test_verbose", log_dir=tmp_path / "logs", verbose=False
    )
    assert not [
        h for h in logger.handlers if getattr(h, "_quiz_site_console", False)
    ]

    _close(logger)


def test_unknown_level_falls_back_to_info(tmp_path):
    logger, _ = core_logging.configure_logger(
        "quiz_site.test_level", log_dir=tmp_path / "logs", level="chatty"
    )

    (handler,) = logger.handlers
    assert handler.level == logging.INFO

    _close(logger)
