from __future__ import annotations

import json
import logging
import sys

from app.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="app.services.progress_service",
        level=level,
        pathname="progress_service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_noisy_libraries_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_selects_json_formatter() -> None:
    setup_logging("info", json_format=True)
    [handler] = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_container_formatter_location_only_for_warnings() -> None:
    fmt = _ContainerFormatter()
    assert "[progress_service.py:" not in fmt.format(_record(logging.INFO))
    assert "[progress_service.py:42]" in fmt.format(_record(logging.WARNING))


def test_container_formatter_is_plain_text() -> None:
    output = _ContainerFormatter().format(_record(msg="Login recorded"))
    assert "INFO" in output
    assert "app.services.progress_service" in output
    assert "Login recorded" in output
    assert not output.startswith("{")


def test_json_formatter_carries_progress_context() -> None:
    record = _record(
        msg="Attempt graded",
        request_id="abc-123",
        user_id="learner-1",
        test_id="quiz-1",
    )
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["level"] == "INFO"
    assert parsed["message"] == "Attempt graded"
    assert parsed["request_id"] == "abc-123"
    assert parsed["user_id"] == "learner-1"
    assert parsed["test_id"] == "quiz-1"
    assert "course_id" not in parsed
    assert "timestamp" in parsed


def test_json_formatter_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(logging.ERROR, msg="failed")
        record.exc_info = sys.exc_info()
        output = _JsonFormatter().format(record)
    assert "ValueError: boom" in json.loads(output)["exception"]
