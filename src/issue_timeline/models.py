"""GitHub 이슈/이벤트 및 리포트 데이터 모델 (Pydantic)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from issue_timeline.exceptions import RepoParseError

EventKind = Literal["labeled", "unlabeled", "closed", "reopened", "other"]

_TRACKED_EVENTS: frozenset[str] = frozenset({"labeled", "unlabeled", "closed", "reopened"})

DAY_FORMAT = "%Y-%m-%d %H:%M:%S"


class RepositoryRef(BaseModel):
    """org/repo 식별자. 캐시/리포트 파티션 키이자 라벨 정규화 입력."""

    model_config = ConfigDict(frozen=True)

    org: str
    name: str

    @classmethod
    def parse(cls, value: str) -> RepositoryRef:
        org, sep, name = value.strip().partition("/")
        if not sep or not org or not name or "/" in name:
            raise RepoParseError(value)
        return cls(org=org, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class Issue(BaseModel):
    """GET /repos/{org}/{repo}/issues 항목.

    - number는 repo 내 고유 식별자 (캐시 키)
    - pull_request 필드가 있으면 PR
    """

    number: int
    created_at: datetime
    updated_at: datetime
    state: str = "open"
    pull_request: dict[str, Any] | None = None
    events_url: str

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None


class IssueEvent(BaseModel):
    """이슈 단위 이벤트. 집계와 무관한 upstream 이벤트 종류는 "other"로 합친다."""

    event: EventKind
    label: str | None = None
    created_at: datetime

    @model_validator(mode="after")
    def label_required(self) -> IssueEvent:
        if self.event in ("labeled", "unlabeled") and self.label is None:
            raise ValueError(f"{self.event} event requires a label")
        return self

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> IssueEvent:
        """GET /issues/{n}/events 응답 항목을 정규화한다."""
        kind = raw.get("event")
        if kind not in _TRACKED_EVENTS:
            return cls(event="other", created_at=raw.get("created_at"))
        label = None
        if kind in ("labeled", "unlabeled"):
            label = (raw.get("label") or {}).get("name")
        return cls(event=kind, label=label, created_at=raw.get("created_at"))


class DataPoint(BaseModel):
    """타임라인 샘플."""

    day: datetime
    open_issues: int = 0
    open_prs: int = 0
    issue_labels: dict[str, int] = Field(default_factory=dict)
    pr_labels: dict[str, int] = Field(default_factory=dict)

    @field_serializer("day")
    def _serialize_day(self, day: datetime) -> str:
        return day.strftime(DAY_FORMAT)


class Report(BaseModel):
    """repo별 영속 JSON 문서. 다음 실행의 캐시 시드로도 쓰인다."""

    last_updated: dict[str, datetime] = Field(default_factory=dict)
    issue_events_cache: dict[str, list[IssueEvent]] = Field(default_factory=dict)
    labels: list[str] = Field(default_factory=list)
    timeline: list[DataPoint] = Field(default_factory=list)
