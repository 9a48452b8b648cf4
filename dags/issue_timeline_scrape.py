"""이슈 타임라인 정기 갱신 DAG.

하루 6회 issue-timeline fetch를 실행해 config.repos의 리포트를 갱신한다.
"""

from __future__ import annotations

import os
from pathlib import Path

import pendulum
from airflow.providers.standard.operators.bash import BashOperator
from airflow.sdk import dag


# ─── 상수 ───────────────────────────────────────────────
_project_root = os.environ.get("ISSUE_TIMELINE_ROOT")
PROJECT_ROOT = Path(_project_root) if _project_root else Path(__file__).resolve().parent.parent
CONFIG_PATH = PROJECT_ROOT / "config.yaml"
DATA_DIR = PROJECT_ROOT / "data"


# ─── DAG 정의 ───────────────────────────────────────────

DEFAULT_ARGS = {
    "owner": "issue-timeline",
    "retries": 1,
    "retry_delay": pendulum.duration(minutes=10),
}


@dag(
    dag_id="issue_timeline_scrape",
    description="GitHub 이슈/PR 타임라인 갱신",
    schedule="42 2,6,10,14,18,22 * * *",
    start_date=pendulum.datetime(2025, 1, 1, tz="UTC"),
    catchup=False,
    max_active_runs=1,
    tags=["github", "issue-timeline"],
    default_args=DEFAULT_ARGS,
)
def issue_timeline_scrape():
    BashOperator(
        task_id="fetch",
        bash_command=(
            "issue-timeline fetch "
            f"--config {CONFIG_PATH} "
            f"--data-dir {DATA_DIR} "
            "--json-log"
        ),
        # throttling 백오프가 최대 한 시간 가까이 대기할 수 있음
        execution_timeout=pendulum.duration(hours=3),
    )


# DAG 인스턴스 생성
issue_timeline_scrape()
