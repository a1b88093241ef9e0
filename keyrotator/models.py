"""
Data models for key rotation.

All models are plain dataclasses, matching the frozen-dataclass pattern in
keyrotator.config. Repository and DeployKey are snapshots read fresh on
every run; nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

_TRUE = {"true", "yes", "1"}
_FALSE = {"false", "no", "0", ""}


class RotationDecision(StrEnum):
    CREATE = "create"
    ROTATE_IMMEDIATE = "rotate_immediate"
    ROTATE_STALE = "rotate_stale"
    SKIP = "skip"

    @property
    def rotates(self) -> bool:
        return self is not RotationDecision.SKIP


class OutcomeStatus(StrEnum):
    ROTATED = "rotated"
    SKIPPED = "skipped"
    FAILED = "failed"


def parse_flag(value: Any) -> bool:
    """Read a boolean flag from JSON, YAML or DynamoDB.

    Strings and numbers are accepted only in their unambiguous forms, so
    "false" stays False. Anything else raises ValueError.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, Decimal)) and value in (0, 1):
        return value == 1
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(f"not a boolean flag: {value!r}")


@dataclass(frozen=True)
class Repository:
    """A repository a team needs a deploy key for."""

    name: str
    read_only: bool = False


@dataclass(frozen=True)
class DeployKey:
    """A deploy key as currently registered on GitHub."""

    id: int
    title: str
    read_only: bool | None = None


@dataclass(frozen=True)
class KeyPair:
    """A freshly generated SSH key pair. The private half is never shown in repr."""

    private_material: str = field(repr=False)
    public_material: str


@dataclass(frozen=True)
class Team:
    """Input to a rotation run.

    When ``repositories`` is None the configured repository source is used.
    """

    name: str
    repositories: tuple[Repository, ...] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Team:
        """Build a team from a descriptor dict (Lambda event or YAML entry)."""
        name = data.get("name") or data.get("Name")
        if not name or not isinstance(name, str):
            raise ValueError("team descriptor requires a 'name'")
        raw_repos = data.get("repositories", data.get("Repositories"))
        if raw_repos is None:
            return cls(name=name)
        repos: list[Repository] = []
        for r in raw_repos:
            if isinstance(r, str):
                repos.append(Repository(name=r))
                continue
            repo_name = r.get("name") or r.get("Name")
            if not repo_name:
                raise ValueError(f"repository entry without a name in team {name!r}")
            read_only = r.get("read_only", r.get("readOnly", r.get("ReadOnly", False)))
            try:
                repos.append(Repository(name=repo_name, read_only=parse_flag(read_only)))
            except ValueError as e:
                raise ValueError(f"repository {repo_name!r} in team {name!r}: read_only is {e}") from e
        return cls(name=name, repositories=tuple(repos))


@dataclass
class RepoOutcome:
    """What happened to one repository during a run."""

    repository: str
    decision: RotationDecision | None
    status: OutcomeStatus
    error: str = ""


@dataclass
class TeamReport:
    """Summary of one team run. Only used for reporting, never persisted."""

    team: str
    outcomes: list[RepoOutcome] = field(default_factory=list)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def rotated(self) -> int:
        return self.count(OutcomeStatus.ROTATED)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "team": self.team,
            "rotated": self.rotated,
            "skipped": self.skipped,
            "failed": self.failed,
            "repositories": [
                {
                    "name": o.repository,
                    "decision": str(o.decision) if o.decision else None,
                    "status": str(o.status),
                    "error": o.error,
                }
                for o in self.outcomes
            ],
        }
