"""repo 단위 타임라인 수집 오케스트레이터.

수집 흐름 (repo별):
1. 이전 리포트 로드 → 이슈 히스토리 캐시 구성
2. 이슈 목록 전체 수집 (pagination)
3. 이슈별 캐시 조회 (updated_at 변경 시에만 이벤트 재수집)
4. replay → merge → fold로 타임라인 생성
5. 리포트 조립 후 원자적 저장

repo 하나의 실패는 해당 repo만 중단하며, 이전에 저장된 리포트는 건드리지 않는다.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from issue_timeline.cache import IssueHistoryCache
from issue_timeline.config import AppConfig
from issue_timeline.exceptions import IssueTimelineError
from issue_timeline.github_api import GitHubApiClient
from issue_timeline.labels import LabelNormalizer
from issue_timeline.models import RepositoryRef
from issue_timeline.report import assemble_report, load_report, report_path, write_report
from issue_timeline.timeline import TimelineBuilder

logger = logging.getLogger(__name__)


@dataclass
class RepoResult:
    """단일 repo 수집 결과."""

    repo: str
    issues: int = 0
    pull_requests: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    data_points: int = 0
    api_calls: int = 0
    duration_ms: float = 0.0
    error: str | None = None


@dataclass
class CollectionSummary:
    """전체 수집 요약."""

    results: list[RepoResult] = field(default_factory=list)

    @property
    def failed(self) -> list[RepoResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def total_api_calls(self) -> int:
        return sum(r.api_calls for r in self.results)


class TimelineCollector:
    """repo 목록을 순차적으로 처리하는 수집기."""

    def __init__(
        self,
        api_client: GitHubApiClient,
        config: AppConfig,
        *,
        normalizer: LabelNormalizer | None = None,
        data_dir: Path | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._api = api_client
        self._config = config
        self._normalizer = normalizer or LabelNormalizer(config.labels)
        self._data_dir = data_dir or Path(config.data_dir)
        self._now = now

    def collect_all(self, repos: Iterable[RepositoryRef]) -> CollectionSummary:
        """모든 repo를 처리한다. 실패는 repo 단위로 격리된다."""
        summary = CollectionSummary()
        for repo in repos:
            summary.results.append(self._collect_isolated(repo))
        return summary

    def _collect_isolated(self, repo: RepositoryRef) -> RepoResult:
        start = time.monotonic()
        calls_before = self._api.request_count
        try:
            return self.collect_repo(repo)
        except (IssueTimelineError, ValidationError, OSError) as exc:
            logger.error(
                "Repo %s failed: %s",
                repo,
                exc,
                extra={"event_code": "REPO_FAILED", "repo": repo.full_name},
            )
            return RepoResult(
                repo=repo.full_name,
                api_calls=self._api.request_count - calls_before,
                duration_ms=(time.monotonic() - start) * 1000,
                error=str(exc),
            )

    def collect_repo(self, repo: RepositoryRef) -> RepoResult:
        """단일 repo의 fetch → replay → write 전체 사이클."""
        start = time.monotonic()
        calls_before = self._api.request_count
        path = report_path(self._data_dir, repo)
        logger.info("Checking %s", repo, extra={"repo": repo.full_name})

        cache = IssueHistoryCache.from_report(load_report(path))
        issues = self._api.fetch_issues(repo)
        cache.prune(issue.number for issue in issues)

        builder = TimelineBuilder(repo, self._normalizer.normalize)
        for issue in issues:
            events = cache.lookup(
                issue.number,
                issue.updated_at,
                lambda issue=issue: self._api.fetch_issue_events(issue),
            )
            builder.add_issue(issue, events)

        now = self._now() if self._now else None
        timeline = builder.build(now=now)
        write_report(path, assemble_report(builder.labels, timeline, cache))

        result = RepoResult(
            repo=repo.full_name,
            issues=builder.issues,
            pull_requests=builder.pull_requests,
            cache_hits=cache.hits,
            cache_misses=cache.misses,
            data_points=len(timeline),
            api_calls=self._api.request_count - calls_before,
            duration_ms=(time.monotonic() - start) * 1000,
        )
        logger.info(
            "Repo %s: %d issues, %d PRs, %d data points (cache hit=%d, miss=%d, api_calls=%d)",
            repo,
            result.issues,
            result.pull_requests,
            result.data_points,
            result.cache_hits,
            result.cache_misses,
            result.api_calls,
            extra={
                "event_code": "REPO_DONE",
                "repo": repo.full_name,
                "duration_ms": result.duration_ms,
                "counts": {"issues": result.issues, "prs": result.pull_requests},
            },
        )
        return result
