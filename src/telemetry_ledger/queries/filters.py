from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Final, TypeAlias


class _AllRepositories:
    """Marker for an unset repository filter."""

    def __repr__(self) -> str:
        return "ALL_REPOSITORIES"


ALL_REPOSITORIES: Final = _AllRepositories()

# ALL_REPOSITORIES = no restriction, str = exact repository, None = uncategorized sessions.
RepoFilter: TypeAlias = str | None | _AllRepositories


@dataclass(frozen=True)
class RepoJoin:
    join: str = ""
    where: str = ""
    params: tuple[Any, ...] = field(default_factory=tuple)


def is_filtered(repo: RepoFilter) -> bool:
    return not isinstance(repo, _AllRepositories)


def build_repo_join(repo: RepoFilter, alias: str) -> RepoJoin:
    """SQL fragments that restrict rows of ``alias`` through the sessions table."""
    if not is_filtered(repo):
        return RepoJoin()
    join = f"JOIN sessions s ON {alias}.session_id = s.session_id"
    if repo is None:
        return RepoJoin(join=join, where="AND s.repository IS NULL")
    return RepoJoin(join=join, where="AND s.repository = ?", params=(repo,))


def parse_repo_filter(repo: str | None, *, uncategorized: bool = False) -> RepoFilter:
    if uncategorized:
        return None
    if repo is None or not repo.strip():
        return ALL_REPOSITORIES
    return repo.strip()
