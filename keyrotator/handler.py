"""
Run driver: one rotation run per team.

    run_team()         token, then every repository in order
    make_handler()     wire a backend and repo source into a team callable
    lambda_handler()   AWS Lambda entry point; the event is a team descriptor

A run fails as a whole only for configuration faults, token issuance, or
when the repository list cannot be read. Individual repositories that fail
are logged and reported in the TeamReport.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from keyrotator.config import Config, get_config
from keyrotator.errors import KeyRotatorError
from keyrotator.logs import ContextAdapter, setup_logging
from keyrotator.models import Team, TeamReport
from keyrotator.repos import DynamoDBRepoSource, RepoSource, StaticRepoSource
from keyrotator.rotation.engine import RotationEngine

logger = logging.getLogger(__name__)


def run_team(team: Team, *, engine: RotationEngine, repo_source: RepoSource | None = None) -> TeamReport:
    """Rotate the access token and all deploy keys for ``team``.

    Raises KeyRotatorError subclasses for fatal faults; never for a single
    repository.
    """
    log = ContextAdapter(logger, {"team": team.name})

    try:
        engine.issue_org_token(team.name)
    except KeyRotatorError as e:
        log.warning("Failed to issue access token: %s", e)
        raise

    if team.repositories is not None:
        source: RepoSource = StaticRepoSource(team.repositories)
    elif repo_source is not None:
        source = repo_source
    else:
        log.info("No repositories configured")
        return TeamReport(team=team.name)

    try:
        repos = source.list()
    except KeyRotatorError as e:
        log.warning("Failed to list repos: %s", e)
        raise
    log.info("Rotating deploy keys for %d repositories", len(repos))

    report = TeamReport(team=team.name)
    for repo in repos:
        report.outcomes.append(engine.rotate_repository(team.name, repo))

    log.info(
        "Finished: %d rotated, %d skipped, %d failed",
        report.rotated,
        report.skipped,
        report.failed,
    )
    return report


def build_engine(cfg: Config, backend: Any = None, **overrides: Any) -> RotationEngine:
    """Create a RotationEngine from configuration."""
    if backend is None:
        from keyrotator.backend import Backend

        backend = Backend.from_config(cfg)
    kwargs: dict[str, Any] = {
        "owner": cfg.owner,
        "templates": cfg.templates,
        "grace_interval": cfg.grace_interval,
        "max_age": timedelta(days=cfg.staleness_days),
    }
    kwargs.update(overrides)
    return RotationEngine(backend, **kwargs)


def build_repo_source(cfg: Config) -> RepoSource | None:
    if not cfg.aws.dynamodb_table:
        return None
    return DynamoDBRepoSource(cfg.aws.dynamodb_table, region=cfg.aws.region)


def make_handler(
    engine: RotationEngine,
    repo_source: RepoSource | None = None,
) -> Callable[[Team], TeamReport]:
    """Return a callable that runs one team against fixed collaborators."""

    def handle(team: Team) -> TeamReport:
        return run_team(team, engine=engine, repo_source=repo_source)

    return handle


_handler: Callable[[Team], TeamReport] | None = None


def lambda_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """AWS Lambda entry point. Clients are created once per container."""
    global _handler
    cfg = get_config()
    setup_logging(cfg.log_level)
    if _handler is None:
        _handler = make_handler(build_engine(cfg), build_repo_source(cfg))
    team = Team.from_dict(event)
    return _handler(team).to_dict()


def reset_handler() -> None:
    """Drop the cached Lambda handler (for testing)."""
    global _handler
    _handler = None
