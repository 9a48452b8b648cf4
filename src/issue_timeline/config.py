"""YAML 설정 로딩 + Pydantic 모델."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from issue_timeline import __version__

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"


# ── 설정 모델 ──────────────────────────────────────────


class GitHubApiConfig(BaseModel):
    base_url: str = "https://api.github.com"
    token_env_var: str = "GITHUB_TOKEN"
    request_timeout_sec: float = 600
    per_page: int = Field(default=100, ge=1, le=100)
    initial_backoff_sec: float = Field(default=60, gt=0)
    max_backoff_sec: float = Field(default=3600, gt=0)
    user_agent: str = f"issue-timeline/{__version__}"

    @model_validator(mode="after")
    def backoff_range(self) -> GitHubApiConfig:
        if self.initial_backoff_sec > self.max_backoff_sec:
            raise ValueError("initial_backoff_sec must not exceed max_backoff_sec")
        return self


class AppConfig(BaseModel):
    """애플리케이션 전체 설정."""

    repos: list[str] = Field(default_factory=list)
    data_dir: str = "data"
    github_api: GitHubApiConfig = Field(default_factory=GitHubApiConfig)
    # repo("org/repo") → canonical label → raw alias 목록
    labels: dict[str, dict[str, list[str]]] = Field(default_factory=dict)

    @field_validator("repos")
    @classmethod
    def repos_are_qualified(cls, v: list[str]) -> list[str]:
        for name in v:
            org, sep, repo = name.partition("/")
            if not sep or not org or not repo or "/" in repo:
                raise ValueError(f"repo must be in 'org/repo' form: {name!r}")
        return v


# ── 로딩 ───────────────────────────────────────────────


def load_config(path: Path | None = None) -> AppConfig:
    """YAML 설정 파일을 로딩하고 Pydantic 모델로 검증한다.

    환경변수 우선순위: 시스템 환경변수 > .env 파일 > config.yaml 기본값
    """
    config_path = path or _DEFAULT_CONFIG_PATH

    # .env 파일 로딩: config.yaml과 같은 디렉터리의 .env를 탐색
    dotenv_path = config_path.parent / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False)

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raise ValueError(f"Empty config file: {config_path}")

    # 환경변수 오버라이드
    if data_dir := os.environ.get("ISSUE_TIMELINE_DATA_DIR"):
        raw["data_dir"] = data_dir

    return AppConfig.model_validate(raw)
