"""리포트 조립 및 JSON 저장소 입출력.

repo별 문서 경로: {data_dir}/{org}/{repo}.json
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import orjson
from pydantic import ValidationError

from issue_timeline.cache import IssueHistoryCache
from issue_timeline.models import DataPoint, Report, RepositoryRef

logger = logging.getLogger(__name__)


def report_path(data_dir: Path, repo: RepositoryRef) -> Path:
    return data_dir / repo.org / f"{repo.name}.json"


def assemble_report(
    labels: list[str],
    timeline: list[DataPoint],
    cache: IssueHistoryCache,
) -> Report:
    """타임라인, 라벨, 갱신된 캐시를 영속화 형태로 묶는다."""
    last_updated, issue_events_cache = cache.export()
    return Report(
        last_updated=last_updated,
        issue_events_cache=issue_events_cache,
        labels=sorted(labels),
        timeline=timeline,
    )


def load_report(path: Path) -> Report | None:
    """이전 리포트를 로드한다.

    파일이 없으면 None (첫 실행). 읽을 수 없거나 형식이 깨진 경우에도
    경고 후 None을 반환해 빈 캐시로 진행한다.
    """
    if not path.exists():
        return None
    try:
        return Report.model_validate(orjson.loads(path.read_bytes()))
    except (orjson.JSONDecodeError, ValidationError, OSError) as exc:
        logger.warning("Failed to load report %s, starting with empty cache: %s", path, exc)
        return None


def write_report(path: Path, report: Report) -> None:
    """리포트를 임시 파일에 쓴 뒤 교체한다 (원자적 저장)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".json.tmp")
    try:
        tmp_path.write_bytes(
            orjson.dumps(report.model_dump(mode="json"), option=orjson.OPT_INDENT_2)
        )
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
