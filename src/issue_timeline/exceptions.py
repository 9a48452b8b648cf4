"""issue-timeline 예외 계층."""

from __future__ import annotations

from datetime import datetime


class IssueTimelineError(Exception):
    """모든 issue-timeline 예외의 기반 클래스."""


class RepoParseError(IssueTimelineError, ValueError):
    """'org/repo' 형식이 아닌 저장소 식별자."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"missing slash in GitHub repository: {value!r}")


class GitHubApiError(IssueTimelineError):
    """재시도 없이 실패한 GitHub API 호출 (응답 본문 포함)."""

    def __init__(self, status_code: int, message: str, *, url: str = "", body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body
        detail = f"GitHub API error {status_code}: {message}"
        if url:
            detail += f" ({url})"
        if body:
            detail += f"\n{body[:2000]}"
        super().__init__(detail)


class GitHubTransportError(GitHubApiError):
    """연결, 타임아웃, 응답 디코딩, 리다이렉트 한도 초과 등 요청 단계 실패."""

    def __init__(self, message: str, *, url: str = ""):
        super().__init__(0, message, url=url)


class RateLimitHeaderError(GitHubApiError):
    """throttling 응답의 rate limit 헤더가 누락되었거나 잘못된 형식."""


class NonReplayableRequestError(IssueTimelineError):
    """재전송할 수 없는 요청 본문 (stream/iterator)."""


class LabelConsistencyError(IssueTimelineError):
    """보유하지 않은 라벨에 대한 unlabeled 이벤트."""

    def __init__(self, repo: str, issue: int, label: str, at: datetime):
        self.repo = repo
        self.issue = issue
        self.label = label
        self.at = at
        super().__init__(
            f"{repo}#{issue}: unlabeled {label!r} at {at.isoformat()} "
            "but the label was not held at that point"
        )
