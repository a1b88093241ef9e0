"""
Rotation decision policy.

Given the deploy keys on a repository and the team's derived key title,
decide what to do this run:

    no key with the title             -> CREATE
    key read_only != repository's     -> ROTATE_IMMEDIATE (flag can't be patched)
    no secret at the key path         -> ROTATE_IMMEDIATE (no private copy)
    secret lookup failed otherwise    -> SKIP
    timestamp missing from secret     -> ROTATE_STALE (never written by us)
    secret younger than max_age       -> SKIP
    otherwise                         -> ROTATE_STALE

Nothing is remembered between runs; the decision is re-derived from live
state every time.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from keyrotator.errors import NotFoundError, UpstreamError
from keyrotator.models import DeployKey, Repository, RotationDecision

STALENESS_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class Classification:
    decision: RotationDecision
    reason: str
    existing: DeployKey | None = None
    lookup_failed: bool = False


def find_matching_key(keys: Iterable[DeployKey], title: str) -> DeployKey | None:
    """Return the first key whose title is exactly ``title``.

    The title is the only link between a GitHub key and the team that owns
    it. Two teams deriving the same title is undefined upstream.
    """
    for key in keys:
        if key.title == title:
            return key
    return None


def classify(
    repository: Repository,
    keys: Iterable[DeployKey],
    title: str,
    last_updated: Callable[[], datetime | None],
    *,
    now: datetime,
    max_age: timedelta = STALENESS_WINDOW,
) -> Classification:
    """Decide the rotation for one repository.

    ``last_updated`` is only called when the decision depends on secret age.
    """
    existing = find_matching_key(keys, title)
    if existing is None:
        return Classification(RotationDecision.CREATE, "no deploy key with this title")

    if existing.read_only is not None and existing.read_only != repository.read_only:
        return Classification(
            RotationDecision.ROTATE_IMMEDIATE,
            f"read_only changed from {existing.read_only} to {repository.read_only}",
            existing,
        )

    try:
        updated = last_updated()
    except NotFoundError:
        return Classification(RotationDecision.ROTATE_IMMEDIATE, "no secret stored for existing key", existing)
    except UpstreamError as e:
        return Classification(
            RotationDecision.SKIP, f"failed to read secret timestamp: {e}", existing, lookup_failed=True
        )

    if updated is None:
        return Classification(RotationDecision.ROTATE_STALE, "secret has no last-updated timestamp", existing)
    age = now - updated
    if age < max_age:
        return Classification(RotationDecision.SKIP, f"key is fresh (age {age})", existing)
    return Classification(RotationDecision.ROTATE_STALE, f"key is stale (age {age})", existing)
