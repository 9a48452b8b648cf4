"""GitHub 이슈/PR 백로그 타임라인 재구성."""

__version__ = "0.1.0"
