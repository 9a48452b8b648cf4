"""테스트 공용 헬퍼 (응답 JSON 빌더, sleep 대역)."""

from __future__ import annotations

from typing import Any

API = "https://api.github.com"
FIXED_CLOCK = 1_700_000_000.0


class FakeSleep:
    """sleep 호출을 기록만 하는 대역."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def issue_json(
    number: int,
    created_at: str = "2024-01-01T00:00:00Z",
    updated_at: str = "2024-01-02T00:00:00Z",
    *,
    state: str = "open",
    pull_request: bool = False,
    repo: str = "o/r",
) -> dict[str, Any]:
    """GET /issues 응답 항목."""
    data: dict[str, Any] = {
        "number": number,
        "title": f"issue {number}",
        "state": state,
        "created_at": created_at,
        "updated_at": updated_at,
        "events_url": f"{API}/repos/{repo}/issues/{number}/events",
        "user": {"login": "dev"},
    }
    if pull_request:
        data["pull_request"] = {"url": f"{API}/repos/{repo}/pulls/{number}"}
    return data


def event_json(kind: str, created_at: str, label: str | None = None) -> dict[str, Any]:
    """GET /issues/{n}/events 응답 항목."""
    data: dict[str, Any] = {
        "event": kind,
        "actor": {"login": "dev"},
        "created_at": created_at,
    }
    if label is not None:
        data["label"] = {"name": label, "color": "d73a4a"}
    return data
