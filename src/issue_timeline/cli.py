"""click CLI 엔트리포인트.

issue-timeline fetch 명령으로 repo별 이슈/PR 타임라인을 갱신합니다.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import orjson

from issue_timeline import __version__
from issue_timeline.collector import CollectionSummary, TimelineCollector
from issue_timeline.config import load_config
from issue_timeline.exceptions import RepoParseError
from issue_timeline.github_api import GitHubApiClient
from issue_timeline.logging_config import setup_logging
from issue_timeline.models import RepositoryRef
from issue_timeline.report import load_report, report_path

logger = logging.getLogger(__name__)


def _parse_repos(values: tuple[str, ...] | list[str]) -> list[RepositoryRef]:
    """org/repo 인자 목록을 파싱한다."""
    repos: list[RepositoryRef] = []
    for value in values:
        try:
            repos.append(RepositoryRef.parse(value))
        except RepoParseError as exc:
            raise click.BadParameter(str(exc), param_hint="REPOS") from exc
    return repos


_config_option = click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="설정 파일 경로 (기본: 프로젝트 루트 config.yaml)",
)


@click.group()
@click.version_option(version=__version__, prog_name="issue-timeline")
def main() -> None:
    """Issue Timeline - GitHub repo의 open 이슈/PR 추이를 재구성합니다."""


@main.command()
@click.argument("repos", nargs=-1)
@_config_option
@click.option(
    "--data-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="리포트 저장 디렉터리 (기본: config.data_dir)",
)
@click.option("--json-log/--no-json-log", default=True, help="JSON 로그 포맷 (기본: 활성)")
def fetch(
    repos: tuple[str, ...],
    config_path: Path | None,
    data_dir: Path | None,
    json_log: bool,
) -> None:
    """repo별 이슈 목록과 이벤트를 수집해 타임라인 리포트를 갱신합니다.

    REPOS를 생략하면 설정 파일의 repos 목록을 사용합니다.

    사용 예:\n
        issue-timeline fetch OoTRandomizer/OoT-Randomizer\n
        issue-timeline fetch --config config.yaml --data-dir data
    """
    setup_logging(json_format=json_log)

    config = load_config(config_path)
    targets = _parse_repos(repos or config.repos)
    if not targets:
        raise click.UsageError("대상 repo가 없습니다 (인자 또는 config.repos 지정)")

    try:
        api = GitHubApiClient(config.github_api)
    except RuntimeError as exc:
        click.echo(f"GitHub API error: {exc}", err=True)
        sys.exit(1)

    try:
        collector = TimelineCollector(api, config, data_dir=data_dir)
        summary = collector.collect_all(targets)
    finally:
        api.close()

    _echo_summary(summary)

    if summary.failed:
        sys.exit(1)


def _echo_summary(summary: CollectionSummary) -> None:
    """repo별 결과 요약 출력."""
    click.echo("\n[fetch] 요약:")
    for r in summary.results:
        if r.error:
            click.echo(f"  FAIL {r.repo}: {r.error}", err=True)
            continue
        click.echo(
            f"  OK   {r.repo}: 이슈 {r.issues}건, PR {r.pull_requests}건 | "
            f"cache hit {r.cache_hits}, miss {r.cache_misses} | "
            f"data points {r.data_points} | api calls {r.api_calls}"
        )
    click.echo(
        f"  총 {len(summary.results)}개 repo 중 {len(summary.failed)}개 실패 | "
        f"api calls {summary.total_api_calls}"
    )


@main.command()
@click.argument("repo")
@_config_option
@click.option(
    "--data-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="리포트 저장 디렉터리 (기본: config.data_dir)",
)
def show(repo: str, config_path: Path | None, data_dir: Path | None) -> None:
    """저장된 리포트의 최신 data point를 출력합니다."""
    (target,) = _parse_repos([repo])
    config = load_config(config_path)
    path = report_path(data_dir or Path(config.data_dir), target)

    report = load_report(path)
    if report is None or not report.timeline:
        click.echo(f"리포트 없음: {path}", err=True)
        sys.exit(1)

    latest = report.timeline[-1]
    click.echo(orjson.dumps(latest.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode())


if __name__ == "__main__":
    main()
