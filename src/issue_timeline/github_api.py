"""GitHub REST API 동기 클라이언트.

저장소 이슈 목록과 이슈별 이벤트를 수집한다.
- 403/429 throttling 재시도 (Retry-After → rate limit reset → 지수 백오프)
- Link 헤더 기반 pagination
- sleep/clock 주입으로 실제 대기 없이 테스트 가능
"""

from __future__ import annotations

import logging
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from issue_timeline.config import GitHubApiConfig
from issue_timeline.exceptions import (
    GitHubApiError,
    GitHubTransportError,
    NonReplayableRequestError,
    RateLimitHeaderError,
)
from issue_timeline.models import Issue, IssueEvent, RepositoryRef

logger = logging.getLogger(__name__)

_THROTTLE_STATUSES = frozenset({403, 429})
_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')


@dataclass
class GitHubApiResult:
    """API 호출 결과 (2xx 응답만)."""

    url: str
    status_code: int
    data: dict[str, Any] | list[Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


class GitHubApiClient:
    """GitHub REST API 동기 클라이언트.

    Args:
        config: API 설정
        token: 인증 토큰 (기본: config.token_env_var 환경변수)
        sleep: 대기 함수 (테스트에서 기록용 fake로 교체)
        clock: 현재 unix 시각 함수 (X-RateLimit-Reset 계산용)
        transport: httpx transport (테스트용)
    """

    def __init__(
        self,
        config: GitHubApiConfig,
        *,
        token: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        token = token or os.environ.get(config.token_env_var, "")
        if not token:
            raise RuntimeError(f"환경변수 {config.token_env_var}이 설정되지 않았습니다")

        self._config = config
        self._sleep = sleep
        self._clock = clock
        self._client = httpx.Client(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": config.user_agent,
            },
            timeout=config.request_timeout_sec,
            follow_redirects=True,
            transport=transport,
        )
        self._rate_remaining: int | None = None
        self._request_count = 0

    # ── 요청 + throttling ──────────────────────────────────

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: Any = None,
    ) -> GitHubApiResult:
        """공통 요청 메서드.

        throttling(403/429) 응답은 성공하거나 백오프 한도에 도달할 때까지 같은
        요청을 재전송한다. 그 외 에러 상태는 즉시 GitHubApiError로 실패한다.
        """
        if content is not None and not isinstance(content, (bytes, str)):
            raise NonReplayableRequestError(
                f"{method} {url}: streamed request body cannot be safely retried"
            )

        backoff = self._config.initial_backoff_sec
        while True:
            try:
                resp = self._client.request(method, url, params=params, json=json, content=content)
            except httpx.RequestError as exc:
                raise GitHubTransportError(f"{type(exc).__name__}: {exc}", url=url) from exc
            self._request_count += 1
            self._track_rate_limit(resp)

            if resp.status_code in _THROTTLE_STATUSES:
                backoff = self._wait_for_throttle(resp, backoff)
                continue

            if not resp.is_success:
                raise GitHubApiError(
                    resp.status_code, resp.reason_phrase, url=str(resp.url), body=resp.text,
                )

            try:
                data = resp.json() if resp.content else None
            except ValueError as exc:
                raise GitHubApiError(
                    resp.status_code, f"invalid JSON body: {exc}", url=str(resp.url), body=resp.text,
                ) from exc
            return GitHubApiResult(
                url=str(resp.url),
                status_code=resp.status_code,
                data=data,
                headers=dict(resp.headers),
            )

    def _track_rate_limit(self, resp: httpx.Response) -> None:
        remaining = resp.headers.get("X-RateLimit-Remaining")
        if remaining is not None and remaining.strip().isdigit():
            self._rate_remaining = int(remaining)

    def _wait_for_throttle(self, resp: httpx.Response, backoff: float) -> float:
        """throttling 응답에 맞춰 대기하고 다음 백오프 간격을 반환한다.

        1. Retry-After가 있으면 그만큼 대기
        2. X-RateLimit-Remaining == 0 이면 X-RateLimit-Reset 시각까지 대기
        3. 그 외에는 지수 백오프 (max_backoff_sec 도달 시 원래 에러로 실패)
        """
        url = str(resp.url)

        retry_after = resp.headers.get("Retry-After")
        if retry_after is not None:
            wait = _parse_header_number(resp, "Retry-After", retry_after)
            logger.warning(
                "Throttled (%d), Retry-After %.0fs",
                resp.status_code,
                wait,
                extra={"event_code": "RATE_LIMITED", "wait_sec": wait},
            )
            self._sleep(wait)
            return backoff

        remaining = resp.headers.get("X-RateLimit-Remaining")
        if remaining is not None and _parse_header_number(resp, "X-RateLimit-Remaining", remaining) == 0:
            reset_at = resp.headers.get("X-RateLimit-Reset")
            if reset_at is None:
                raise RateLimitHeaderError(
                    resp.status_code,
                    "rate limit exhausted without X-RateLimit-Reset header",
                    url=url,
                    body=resp.text,
                )
            reset = _parse_header_number(resp, "X-RateLimit-Reset", reset_at)
            wait = max(0.0, reset - self._clock())
            logger.warning(
                "Rate limit exhausted, waiting %.0fs until reset",
                wait,
                extra={"event_code": "RATE_LIMITED", "wait_sec": wait},
            )
            self._sleep(wait)
            return backoff

        if backoff >= self._config.max_backoff_sec:
            logger.error(
                "Throttled (%d) and backoff exhausted for %s",
                resp.status_code,
                url,
                extra={"event_code": "BACKOFF_EXHAUSTED"},
            )
            raise GitHubApiError(resp.status_code, resp.reason_phrase, url=url, body=resp.text)

        logger.warning(
            "Throttled (%d), backing off %.0fs",
            resp.status_code,
            backoff,
            extra={"event_code": "BACKOFF", "wait_sec": backoff},
        )
        self._sleep(backoff)
        return backoff * 2

    # ── pagination ─────────────────────────────────────────

    @staticmethod
    def _parse_next_link(headers: dict[str, str]) -> str | None:
        """Link 헤더에서 rel="next" URL을 추출한다."""
        link_header = headers.get("link") or headers.get("Link")
        if not link_header:
            return None

        for part in link_header.split(","):
            match = _NEXT_LINK_RE.search(part)
            if match:
                return match.group(1)
        return None

    def paginate(self, path: str, *, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Link 헤더 기반 pagination으로 전체 결과를 수집한다."""
        all_items: list[dict[str, Any]] = []
        visited: set[str] = set()
        url: str | None = path
        page_params: dict[str, Any] | None = {"per_page": self._config.per_page, **(params or {})}

        while url:
            result = self._request("GET", url, params=page_params)
            visited.add(result.url)
            if not isinstance(result.data, list):
                raise GitHubApiError(result.status_code, "expected a JSON array page", url=result.url)
            all_items.extend(result.data)

            next_url = self._parse_next_link(result.headers)
            if next_url is not None and next_url in visited:
                logger.warning("Pagination loop detected at %s, stopping", next_url)
                break
            url = next_url
            page_params = None  # 다음 페이지 URL에 이미 params 포함

        return all_items

    # ── 공개 API 메서드 ──────────────────────────────────────

    def fetch_issues(self, repo: RepositoryRef) -> list[Issue]:
        """GET /repos/{org}/{repo}/issues?state=all: 이슈와 PR 전체."""
        items = self.paginate(f"/repos/{repo.org}/{repo.name}/issues", params={"state": "all"})
        return [Issue.model_validate(item) for item in items]

    def fetch_issue_events(self, issue: Issue) -> list[IssueEvent]:
        """이슈의 events_url 전체 (upstream 순서 그대로, 정렬하지 않음)."""
        items = self.paginate(issue.events_url)
        return [IssueEvent.from_api(item) for item in items]

    @property
    def rate_remaining(self) -> int | None:
        """현재 남은 rate limit."""
        return self._rate_remaining

    @property
    def request_count(self) -> int:
        """실제로 전송한 HTTP 요청 수."""
        return self._request_count

    def close(self) -> None:
        """httpx.Client를 종료한다."""
        self._client.close()

    def __enter__(self) -> GitHubApiClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _parse_header_number(resp: httpx.Response, name: str, value: str) -> float:
    """throttling 헤더 값을 숫자로 파싱한다. 실패 시 RateLimitHeaderError."""
    try:
        number = float(value.strip())
    except ValueError:
        raise RateLimitHeaderError(
            resp.status_code, f"malformed {name} header: {value!r}", url=str(resp.url), body=resp.text,
        ) from None
    if number < 0:
        raise RateLimitHeaderError(
            resp.status_code, f"negative {name} header: {value!r}", url=str(resp.url), body=resp.text,
        )
    return number
