"""
Template resolution for secret paths and deploy key titles.

Templates use Python format fields:

    {team}          team name
    {repository}    repository name, with "." replaced by "-"
    {owner}         GitHub organisation ({organisation}/{organization} are aliases)

Unknown fields are an error, never an empty substitution, so a typo cannot
send a secret to a truncated path.
"""

from __future__ import annotations

import string

from keyrotator.errors import TemplateError

_formatter = string.Formatter()


def sanitise_repository(name: str) -> str:
    """Secrets Manager paths are read by Concourse, which treats dots as delimiters."""
    return name.replace(".", "-")


def _context(team: str, repository: str, owner: str) -> dict[str, str]:
    return {
        "team": team,
        "repository": repository,
        "owner": owner,
        "organisation": owner,
        "organization": owner,
    }


def _render(pattern: str, context: dict[str, str]) -> str:
    try:
        fields = list(_formatter.parse(pattern))
    except ValueError as e:
        raise TemplateError(f"invalid template {pattern!r}: {e}") from e

    for _literal, field_name, _spec, _conversion in fields:
        if field_name is None:
            continue
        if field_name == "" or field_name.isdigit():
            raise TemplateError(f"positional field in template {pattern!r}")
        if "." in field_name or "[" in field_name:
            raise TemplateError(f"field {field_name!r} in template {pattern!r} is not a plain name")
        if field_name not in context:
            raise TemplateError(f"unknown field {field_name!r} in template {pattern!r}")

    try:
        return pattern.format_map(context)
    except (KeyError, IndexError, ValueError) as e:
        raise TemplateError(f"failed to render template {pattern!r}: {e}") from e


def resolve(team: str, repository: str, owner: str, pattern: str) -> str:
    """Render ``pattern`` for a team's repository."""
    return _render(pattern, _context(team, sanitise_repository(repository), owner))


def resolve_without_repository(team: str, owner: str, pattern: str) -> str:
    """Render ``pattern`` for organisation-wide artifacts such as the access token."""
    return _render(pattern, _context(team, "", owner))
