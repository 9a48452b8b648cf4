"""repo별 라벨 정규화.

설정의 canonical → [alias] 테이블을 raw → canonical 조회 테이블로 뒤집어 보관한다.
테이블에 없는 라벨(또는 테이블이 없는 repo)은 그대로 통과한다.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from issue_timeline.models import RepositoryRef


class LabelNormalizer:
    """결정적, 부수효과 없는 라벨 정규화기."""

    def __init__(self, tables: Mapping[str, Mapping[str, list[str]]] | None = None) -> None:
        lookup: dict[str, Mapping[str, str]] = {}
        for repo_name, table in (tables or {}).items():
            repo = RepositoryRef.parse(repo_name)
            lookup[repo.full_name] = MappingProxyType(_invert(repo.full_name, table))
        self._lookup = MappingProxyType(lookup)

    def normalize(self, repo: RepositoryRef, raw_label: str) -> str:
        table = self._lookup.get(repo.full_name)
        if table is None:
            return raw_label
        return table.get(raw_label, raw_label)

    __call__ = normalize

    def has_table(self, repo: RepositoryRef) -> bool:
        return repo.full_name in self._lookup


def _invert(repo_name: str, table: Mapping[str, list[str]]) -> dict[str, str]:
    inverted: dict[str, str] = {}
    for canonical, aliases in table.items():
        for raw in (canonical, *aliases):
            existing = inverted.get(raw)
            if existing is not None and existing != canonical:
                raise ValueError(
                    f"{repo_name}: label {raw!r} maps to both {existing!r} and {canonical!r}"
                )
            inverted[raw] = canonical
    return inverted
