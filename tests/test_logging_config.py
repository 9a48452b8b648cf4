"""JSON 로깅 설정 테스트."""

from __future__ import annotations

import json
import logging

from issue_timeline.logging_config import JsonFormatter, setup_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="issue_timeline.github_api",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Throttled (%d), backing off %.0fs",
        args=(403, 60.0),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self) -> None:
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "issue_timeline.github_api"
        assert entry["message"] == "Throttled (403), backing off 60s"
        assert entry["timestamp"].endswith("Z")

    def test_extra_fields_merged(self) -> None:
        entry = json.loads(
            JsonFormatter().format(_record(event_code="BACKOFF", wait_sec=60.0, repo="o/r", unrelated="x"))
        )
        assert entry["event_code"] == "BACKOFF"
        assert entry["wait_sec"] == 60.0
        assert entry["repo"] == "o/r"
        assert "unrelated" not in entry


class TestSetupLogging:
    def test_single_handler(self) -> None:
        setup_logging(json_format=True)
        setup_logging(json_format=False, level=logging.DEBUG)
        logger = logging.getLogger("issue_timeline")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert not isinstance(logger.handlers[0].formatter, JsonFormatter)
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
