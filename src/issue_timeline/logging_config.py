"""수집 실행 로그 설정.

스케줄 실행(Airflow)에서는 한 줄 JSON으로, 로컬 CLI에서는 사람이 읽는 포맷으로 남긴다.
throttle 대기, 캐시 적중, repo 단위 성공/실패는 ``extra={"event_code": ...}``로
구분하므로 JSON 로그만으로 실행을 재구성할 수 있다.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

PACKAGE_LOGGER = "issue_timeline"

# event_code: RATE_LIMITED, BACKOFF, BACKOFF_EXHAUSTED, CACHE_HIT, CACHE_MISS,
# LABEL_CONSISTENCY, STATE_MISMATCH, REPO_DONE, REPO_FAILED
_CONTEXT_FIELDS = ("event_code", "repo", "issue", "wait_sec", "duration_ms", "counts")


class JsonFormatter(logging.Formatter):
    """레코드 한 건을 JSON 한 줄로 만든다. 값이 있는 컨텍스트 필드만 싣는다."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in _CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(*, json_format: bool = True, level: int = logging.INFO) -> None:
    """issue_timeline 로거에 stderr 핸들러 하나를 붙인다.

    여러 번 호출해도 핸들러는 하나만 유지된다 (CLI 재호출, 테스트).
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    package_logger.addHandler(handler)
