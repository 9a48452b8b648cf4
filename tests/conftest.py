"""공통 fixture."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml
from helpers import API, FIXED_CLOCK, FakeSleep

from issue_timeline.config import GitHubApiConfig
from issue_timeline.github_api import GitHubApiClient


@pytest.fixture()
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture()
def api_config() -> GitHubApiConfig:
    return GitHubApiConfig(token_env_var="GITHUB_TOKEN", request_timeout_sec=5)


@pytest.fixture()
def api_client(api_config: GitHubApiConfig, fake_sleep: FakeSleep) -> GitHubApiClient:
    client = GitHubApiClient(
        api_config, token="ghp_test_token_12345", sleep=fake_sleep, clock=lambda: FIXED_CLOCK,
    )
    yield client
    client.close()


@pytest.fixture()
def sample_config_data(tmp_path: Path) -> dict[str, Any]:
    """테스트용 config dict."""
    return {
        "repos": ["o/r", "o/other"],
        "data_dir": str(tmp_path / "data"),
        "github_api": {
            "base_url": API,
            "token_env_var": "GITHUB_TOKEN",
            "request_timeout_sec": 30,
            "per_page": 100,
        },
        "labels": {
            "o/r": {"Type: Bug": ["bug", "Bug"], "Type: Enhancement": ["enhancement"]},
        },
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, sample_config_data: dict[str, Any]) -> Path:
    """임시 YAML 설정 파일."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(sample_config_data), encoding="utf-8")
    return config_path
