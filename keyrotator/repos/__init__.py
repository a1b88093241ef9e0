"""
Repository sources: where a team's list of repositories comes from.

    DynamoDBRepoSource   single Scan of a table of repo names
    StaticRepoSource     fixed list from a team descriptor or YAML file
"""

from __future__ import annotations

from typing import Protocol

from keyrotator.models import Repository
from keyrotator.repos.dynamodb import DynamoDBRepoSource
from keyrotator.repos.static import StaticRepoSource


class RepoSource(Protocol):
    def list(self) -> list[Repository]: ...


__all__ = ["DynamoDBRepoSource", "RepoSource", "StaticRepoSource"]
