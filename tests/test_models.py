"""데이터 모델 테스트."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from helpers import event_json, issue_json
from pydantic import ValidationError

from issue_timeline.exceptions import RepoParseError
from issue_timeline.models import DataPoint, Issue, IssueEvent, RepositoryRef


class TestRepositoryRef:
    def test_parse(self) -> None:
        repo = RepositoryRef.parse("OoTRandomizer/OoT-Randomizer")
        assert repo.org == "OoTRandomizer"
        assert repo.name == "OoT-Randomizer"
        assert str(repo) == "OoTRandomizer/OoT-Randomizer"

    @pytest.mark.parametrize("value", ["no-slash", "/repo", "org/", "a/b/c"])
    def test_parse_invalid(self, value: str) -> None:
        with pytest.raises(RepoParseError, match="missing slash"):
            RepositoryRef.parse(value)

    def test_hashable_and_frozen(self) -> None:
        repo = RepositoryRef(org="o", name="r")
        assert {repo: 1}[RepositoryRef(org="o", name="r")] == 1
        with pytest.raises(ValidationError):
            repo.org = "x"


class TestIssue:
    def test_pull_request_marker(self) -> None:
        assert Issue.model_validate(issue_json(1, pull_request=True)).is_pull_request
        assert not Issue.model_validate(issue_json(2)).is_pull_request

    def test_extra_fields_ignored(self) -> None:
        issue = Issue.model_validate({**issue_json(1), "labels": [{"name": "bug"}]})
        assert issue.number == 1


class TestIssueEvent:
    def test_from_api_labeled(self) -> None:
        event = IssueEvent.from_api(event_json("labeled", "2024-01-01T00:00:00Z", "bug"))
        assert event.event == "labeled"
        assert event.label == "bug"
        assert event.created_at == datetime(2024, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("kind", ["assigned", "mentioned", "merged", "renamed", "cross-referenced"])
    def test_from_api_collapses_other_kinds(self, kind: str) -> None:
        event = IssueEvent.from_api(event_json(kind, "2024-01-01T00:00:00Z"))
        assert event.event == "other"
        assert event.label is None

    def test_labeled_requires_label(self) -> None:
        with pytest.raises(ValidationError, match="requires a label"):
            IssueEvent(event="unlabeled", created_at=datetime(2024, 1, 1, tzinfo=UTC))


class TestDataPoint:
    def test_day_format(self) -> None:
        point = DataPoint(day=datetime(2024, 3, 4, 5, 6, 7, tzinfo=UTC), open_issues=3)
        assert point.model_dump(mode="json") == {
            "day": "2024-03-04 05:06:07",
            "open_issues": 3,
            "open_prs": 0,
            "issue_labels": {},
            "pr_labels": {},
        }
