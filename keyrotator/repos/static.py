"""Fixed repository list, e.g. from a team descriptor."""

from __future__ import annotations

from collections.abc import Iterable

from keyrotator.models import Repository


class StaticRepoSource:
    def __init__(self, repositories: Iterable[Repository]) -> None:
        self._repositories = list(repositories)

    def list(self) -> list[Repository]:
        return list(self._repositories)
