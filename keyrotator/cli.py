"""
keyrotator CLI: run rotations by hand and inspect configuration.

Usage:
    keyrotator run --team platform                  # repos from DynamoDB
    keyrotator run --team platform --repo svc-a --repo docs:ro
    keyrotator run --teams teams.yaml               # every team in a file
    keyrotator render --team platform --repo svc.a --template "/concourse/{team}/{repository}"
    keyrotator config                               # effective settings, secrets redacted
    keyrotator version
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="keyrotator",
        description="Rotate GitHub deploy keys and access tokens into AWS Secrets Manager.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # run
    run_parser = subparsers.add_parser("run", help="Rotate credentials for one or more teams")
    run_parser.add_argument("--team", type=str, help="Team name")
    run_parser.add_argument(
        "--repo",
        action="append",
        default=[],
        metavar="NAME[:ro]",
        help="Repository to rotate (repeatable); suffix :ro for a read-only key",
    )
    run_parser.add_argument("--teams", type=str, help="YAML file with a 'teams' list")
    run_parser.add_argument(
        "--grace", type=float, default=None, help="Seconds between publishing and deleting keys"
    )
    run_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    # render
    render_parser = subparsers.add_parser("render", help="Resolve a path/title template")
    render_parser.add_argument("--team", required=True, help="Team name")
    render_parser.add_argument("--repo", default=None, help="Repository name (omit for org-wide)")
    render_parser.add_argument("--owner", default=None, help="Organisation (default: configured)")
    render_parser.add_argument("--template", required=True, help="Template, e.g. '{team}/{repository}'")

    # config
    subparsers.add_parser("config", help="Show effective configuration")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from keyrotator import __version__

        print(f"keyrotator {__version__}")
        return 0

    if args.command == "run":
        return _cmd_run(args)
    elif args.command == "render":
        return _cmd_render(args)
    elif args.command == "config":
        return _cmd_config()
    else:
        parser.print_help()
        return 0


def _parse_repo(value: str):
    from keyrotator.models import Repository

    name, _, flag = value.partition(":")
    if flag and flag not in ("ro", "rw"):
        raise ValueError(f"unknown repository flag {flag!r} in {value!r} (use :ro or :rw)")
    return Repository(name=name, read_only=flag == "ro")


def load_teams_file(path: Path) -> list:
    """Load teams from a YAML file: ``teams: [{name, repositories: [...]}]``."""
    import yaml  # type: ignore[import-untyped]

    from keyrotator.models import Team

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    raw = data.get("teams", []) if isinstance(data, dict) else data
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a list of teams")
    return [Team.from_dict(t) for t in raw]


def _cmd_run(args: argparse.Namespace) -> int:
    from keyrotator.config import get_config
    from keyrotator.errors import KeyRotatorError
    from keyrotator.handler import build_engine, build_repo_source, run_team
    from keyrotator.logs import setup_logging
    from keyrotator.models import Team

    cfg = get_config()
    setup_logging(cfg.log_level)

    try:
        if args.teams:
            teams = load_teams_file(Path(args.teams))
        elif args.team:
            repos = tuple(_parse_repo(r) for r in args.repo) if args.repo else None
            teams = [Team(name=args.team, repositories=repos)]
        else:
            print("Error: pass --team or --teams")
            return 2
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 2

    overrides = {}
    if args.grace is not None:
        overrides["grace_interval"] = args.grace

    try:
        engine = build_engine(cfg, **overrides)
    except KeyRotatorError as e:
        print(f"Error: {e}")
        return 1
    repo_source = build_repo_source(cfg)

    rc = 0
    reports = []
    for team in teams:
        try:
            report = run_team(team, engine=engine, repo_source=repo_source)
        except KeyRotatorError as e:
            print(f"{team.name}: FAILED: {e}")
            rc = 1
            continue
        reports.append(report)
        if not args.json:
            _print_report(report)

    if args.json:
        print(json.dumps([r.to_dict() for r in reports], indent=2))
    return rc


def _print_report(report) -> None:
    print(f"{report.team}: {report.rotated} rotated, {report.skipped} skipped, {report.failed} failed")
    for o in report.outcomes:
        decision = o.decision or "-"
        line = f"  {o.repository:<40} {decision:<17} {o.status}"
        if o.error:
            line += f"  ({o.error})"
        print(line)


def _cmd_render(args: argparse.Namespace) -> int:
    from keyrotator.config import get_config
    from keyrotator.errors import TemplateError
    from keyrotator.template import resolve, resolve_without_repository

    owner = args.owner if args.owner is not None else get_config().owner
    try:
        if args.repo is None:
            out = resolve_without_repository(args.team, owner, args.template)
        else:
            out = resolve(args.team, args.repo, owner, args.template)
    except TemplateError as e:
        print(f"Error: {e}")
        return 1
    print(out)
    return 0


def _cmd_config() -> int:
    from keyrotator.config import get_config

    print(json.dumps(get_config().redacted(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
