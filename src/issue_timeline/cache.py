"""이슈 이벤트 히스토리 캐시.

이슈별 마지막 updated_at과 그 시점에 수집한 이벤트 목록을 보관한다.
updated_at이 그대로인 이슈는 네트워크 호출 없이 캐시를 재사용한다.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TypeVar

from issue_timeline.models import IssueEvent, Report

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IssueHistoryCache:
    """issue number → (updated_at, 정렬된 이벤트 목록).

    실행 단위 값 객체: 이전 리포트에서 만들어지고(load), lookup으로 갱신되며,
    export 결과가 새 리포트에 실린다(persist).
    """

    def __init__(
        self,
        last_updated: dict[int, datetime] | None = None,
        events: dict[int, list[IssueEvent]] | None = None,
    ) -> None:
        self._last_updated: dict[int, datetime] = dict(last_updated or {})
        self._events: dict[int, list[IssueEvent]] = {
            number: list(items) for number, items in (events or {}).items()
        }
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_report(cls, report: Report | None) -> IssueHistoryCache:
        """이전 리포트의 캐시 필드로 초기화한다. 리포트가 없으면 빈 캐시."""
        if report is None:
            return cls()
        last_updated = _numbered(report.last_updated)
        # 타임스탬프와 이벤트가 모두 있는 항목만 유효
        events = {
            number: items
            for number, items in _numbered(report.issue_events_cache).items()
            if number in last_updated
        }
        last_updated = {k: v for k, v in last_updated.items() if k in events}
        return cls(last_updated, events)

    def lookup(
        self,
        issue_id: int,
        modified_at: datetime,
        fetch: Callable[[], list[IssueEvent]],
    ) -> list[IssueEvent]:
        """이슈 이벤트 목록을 반환한다.

        캐시된 updated_at이 modified_at과 같으면 캐시를 그대로 반환하고,
        아니면 fetch()로 다시 받아 created_at 오름차순 정렬 후 저장한다.
        """
        cached_at = self._last_updated.get(issue_id)
        if cached_at is not None and cached_at == modified_at and issue_id in self._events:
            self.hits += 1
            logger.debug("Issue #%d: cache hit", issue_id, extra={"event_code": "CACHE_HIT", "issue": issue_id})
            return list(self._events[issue_id])

        self.misses += 1
        logger.debug("Issue #%d: fetching events", issue_id, extra={"event_code": "CACHE_MISS", "issue": issue_id})
        events = sorted(fetch(), key=lambda e: e.created_at)
        self._events[issue_id] = events
        self._last_updated[issue_id] = modified_at
        return list(events)

    def prune(self, live_ids: Iterable[int]) -> int:
        """목록 API에 더 이상 나오지 않는 이슈 항목을 제거하고 제거 수를 반환한다."""
        live = set(live_ids)
        stale = [number for number in self._events if number not in live]
        for number in stale:
            del self._events[number]
            self._last_updated.pop(number, None)
        if stale:
            logger.info("Pruned %d stale cache entries", len(stale))
        return len(stale)

    def export(self) -> tuple[dict[str, datetime], dict[str, list[IssueEvent]]]:
        """영속화 형태 (last_updated, issue_events_cache)로 내보낸다."""
        ordered = sorted(self._events)
        return (
            {str(number): self._last_updated[number] for number in ordered},
            {str(number): list(self._events[number]) for number in ordered},
        )

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self._events

    def __len__(self) -> int:
        return len(self._events)


def _numbered(entries: dict[str, T]) -> dict[int, T]:
    """문자열 키를 issue number로 바꾼다. 숫자가 아닌 키는 경고 후 버린다."""
    numbered: dict[int, T] = {}
    for key, value in entries.items():
        try:
            numbered[int(key)] = value
        except ValueError:
            logger.warning("Dropping cache entry with non-numeric key %r", key)
    return numbered
