"""이벤트 소싱 기반 타임라인 빌더.

1. 이슈별 replay: 정렬된 이슈 이벤트 → 전역 이벤트 (opened/closed/labeled/unlabeled)
2. 전역 merge: 타임스탬프별 버킷 (같은 시각은 발생 순서 유지)
3. 전역 fold: 불변 카운터를 버킷 순서대로 진행하며 버킷마다 before/after DataPoint 생성
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Literal

from issue_timeline.exceptions import LabelConsistencyError
from issue_timeline.models import DataPoint, Issue, IssueEvent, RepositoryRef

logger = logging.getLogger(__name__)

GlobalEventKind = Literal["opened", "closed", "labeled", "unlabeled"]

_DELTA: dict[str, int] = {"opened": 1, "closed": -1, "labeled": 1, "unlabeled": -1}

Normalize = Callable[[RepositoryRef, str], str]


@dataclass(frozen=True)
class GlobalEvent:
    """replay용 전역 이벤트.

    opened/closed의 labels는 그 시점 이슈가 가진 라벨 스냅샷,
    labeled/unlabeled의 labels는 대상 라벨 하나.
    """

    kind: GlobalEventKind
    pull_request: bool
    labels: tuple[str, ...] = ()

    @property
    def delta(self) -> int:
        return _DELTA[self.kind]


@dataclass
class IssueReplay:
    """단일 이슈 replay 결과."""

    events: list[tuple[datetime, GlobalEvent]] = field(default_factory=list)
    labels: set[str] = field(default_factory=set)
    is_open: bool = True


def replay_issue(
    repo: RepositoryRef,
    issue: Issue,
    events: Iterable[IssueEvent],
    normalize: Normalize,
) -> IssueReplay:
    """정렬된 이슈 이벤트를 replay해 전역 이벤트를 만든다.

    Raises:
        LabelConsistencyError: 보유하지 않은 라벨의 unlabeled 이벤트
    """
    pr = issue.is_pull_request
    result = IssueReplay()
    # upstream에는 생성 이벤트가 없으므로 created_at에 빈 스냅샷으로 open
    result.events.append((issue.created_at, GlobalEvent("opened", pr)))
    held: dict[str, None] = {}  # 삽입 순서 유지 set

    for event in events:
        if event.event == "labeled":
            label = normalize(repo, event.label)
            result.labels.add(label)
            if label in held:
                continue
            held[label] = None
            if result.is_open:
                result.events.append((event.created_at, GlobalEvent("labeled", pr, (label,))))

        elif event.event == "unlabeled":
            label = normalize(repo, event.label)
            if label not in held:
                logger.error(
                    "Issue #%d: unlabeled %r without holding it",
                    issue.number,
                    label,
                    extra={"event_code": "LABEL_CONSISTENCY", "repo": repo.full_name, "issue": issue.number},
                )
                raise LabelConsistencyError(repo.full_name, issue.number, label, event.created_at)
            del held[label]
            if result.is_open:
                result.events.append((event.created_at, GlobalEvent("unlabeled", pr, (label,))))

        elif event.event == "closed":
            if not result.is_open:
                logger.debug("Issue #%d: closed while already closed, ignored", issue.number)
                continue
            result.is_open = False
            result.events.append((event.created_at, GlobalEvent("closed", pr, tuple(held))))

        elif event.event == "reopened":
            if result.is_open:
                logger.debug("Issue #%d: reopened while already open, ignored", issue.number)
                continue
            result.is_open = True
            result.events.append((event.created_at, GlobalEvent("opened", pr, tuple(held))))

    if issue.state == "closed" and result.is_open:
        logger.warning(
            "Issue #%d is closed but its event stream leaves it open",
            issue.number,
            extra={"event_code": "STATE_MISMATCH", "repo": repo.full_name, "issue": issue.number},
        )
    return result


def merge_events(
    streams: Iterable[Iterable[tuple[datetime, GlobalEvent]]],
) -> list[tuple[datetime, list[GlobalEvent]]]:
    """이슈별 전역 이벤트를 타임스탬프 오름차순 버킷으로 합친다."""
    buckets: defaultdict[datetime, list[GlobalEvent]] = defaultdict(list)
    for stream in streams:
        for at, event in stream:
            buckets[at].append(event)
    return sorted(buckets.items())


_EMPTY: Mapping[str, int] = MappingProxyType({})


@dataclass(frozen=True)
class Counters:
    """fold 누산기 (불변)."""

    open_issues: int = 0
    open_prs: int = 0
    issue_labels: Mapping[str, int] = field(default_factory=lambda: _EMPTY)
    pr_labels: Mapping[str, int] = field(default_factory=lambda: _EMPTY)

    def apply(self, event: GlobalEvent) -> Counters:
        delta = event.delta
        current = self.pr_labels if event.pull_request else self.issue_labels
        labels = dict(current)
        for label in event.labels:
            labels[label] = labels.get(label, 0) + delta
        labels_proxy = MappingProxyType(labels)

        changes: dict[str, object] = {"pr_labels" if event.pull_request else "issue_labels": labels_proxy}
        if event.kind in ("opened", "closed"):
            if event.pull_request:
                changes["open_prs"] = self.open_prs + delta
            else:
                changes["open_issues"] = self.open_issues + delta
        return replace(self, **changes)

    def snapshot(self, day: datetime) -> DataPoint:
        return DataPoint(
            day=day,
            open_issues=self.open_issues,
            open_prs=self.open_prs,
            issue_labels=dict(sorted(self.issue_labels.items())),
            pr_labels=dict(sorted(self.pr_labels.items())),
        )


def step(acc: Counters, bucket: tuple[datetime, list[GlobalEvent]]) -> tuple[Counters, list[DataPoint]]:
    """버킷 하나를 적용한다: before 스냅샷, 이벤트 적용, after 스냅샷."""
    day, events = bucket
    before = acc.snapshot(day)
    for event in events:
        acc = acc.apply(event)
    return acc, [before, acc.snapshot(day)]


def build_timeline(
    buckets: Iterable[tuple[datetime, list[GlobalEvent]]],
    *,
    now: datetime | None = None,
) -> list[DataPoint]:
    """버킷 시퀀스를 fold해 DataPoint 타임라인을 만든다.

    마지막에 현재 시각 기준 최종 상태 DataPoint를 하나 더 붙인다.
    """
    acc = Counters()
    timeline: list[DataPoint] = []
    for bucket in buckets:
        acc, points = step(acc, bucket)
        timeline.extend(points)
    timeline.append(acc.snapshot(now or datetime.now(tz=UTC)))
    return timeline


class TimelineBuilder:
    """repo 단위 빌더: 이슈를 순서대로 추가한 뒤 build()."""

    def __init__(self, repo: RepositoryRef, normalize: Normalize) -> None:
        self._repo = repo
        self._normalize = normalize
        self._streams: list[list[tuple[datetime, GlobalEvent]]] = []
        self._labels: set[str] = set()
        self.issues = 0
        self.pull_requests = 0

    def add_issue(self, issue: Issue, events: Iterable[IssueEvent]) -> IssueReplay:
        replay = replay_issue(self._repo, issue, events, self._normalize)
        self._streams.append(replay.events)
        self._labels.update(replay.labels)
        if issue.is_pull_request:
            self.pull_requests += 1
        else:
            self.issues += 1
        return replay

    @property
    def labels(self) -> list[str]:
        """관찰된 canonical 라벨 (정렬)."""
        return sorted(self._labels)

    def build(self, *, now: datetime | None = None) -> list[DataPoint]:
        return build_timeline(merge_events(self._streams), now=now)
