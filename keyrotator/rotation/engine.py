"""
Rotation engine: issues the team's access token and rotates deploy keys.

Per repository the sequence is:

    1. derive title and secret path from the templates
    2. list keys, classify (keyrotator.rotation.policy)
    3. generate key pair -> publish public key -> store private key
    4. if an old key existed: wait the grace interval, then delete it

A failure at any step of 1-4 is logged and ends that repository's turn; the
next repository is still processed. The old key is never deleted before the
new key is both published and stored. If publishing succeeds but storing
fails, the new key stays registered without a stored private half; the next
run finds the key but no secret and rotates it again.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from keyrotator.backend import CredentialBackend
from keyrotator.config import TemplateConfig
from keyrotator.errors import KeyRotatorError
from keyrotator.logs import ContextAdapter
from keyrotator.models import DeployKey, OutcomeStatus, RepoOutcome, Repository
from keyrotator.rotation.policy import STALENESS_WINDOW, classify
from keyrotator.template import resolve, resolve_without_repository

logger = logging.getLogger(__name__)


class RotationEngine:
    """Rotates one team's credentials against a CredentialBackend."""

    def __init__(
        self,
        backend: CredentialBackend,
        *,
        owner: str,
        templates: TemplateConfig | None = None,
        grace_interval: float = 1.0,
        max_age: timedelta = STALENESS_WINDOW,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.backend = backend
        self.owner = owner
        self.templates = templates or TemplateConfig()
        self.grace_interval = grace_interval
        self.max_age = max_age
        self._sleep = sleep
        self._now = now

    def issue_org_token(self, team: str) -> str:
        """Mint a new organisation token and store it. Returns the secret path.

        Always re-issues; tokens are short-lived. Raises on any failure.
        """
        log = ContextAdapter(logger, {"team": team})
        path = resolve_without_repository(team, self.owner, self.templates.token)
        token = self.backend.create_installation_token(self.owner)
        self.backend.write_secret(path, token)
        log.info("Wrote access token to %s", path)
        return path

    def rotate_repository(self, team: str, repository: Repository) -> RepoOutcome:
        """Classify and, if needed, rotate the team's deploy key on one repository.

        Never raises for backend or template failures; they are logged and
        reported in the returned outcome.
        """
        log = ContextAdapter(logger, {"team": team, "repository": repository.name})

        try:
            path = resolve(team, repository.name, self.owner, self.templates.key)
            title = resolve(team, repository.name, self.owner, self.templates.title)
        except KeyRotatorError as e:
            log.warning("Failed to resolve deploy key templates: %s", e)
            return RepoOutcome(repository.name, None, OutcomeStatus.FAILED, str(e))

        try:
            keys = self.backend.list_keys(self.owner, repository.name)
        except KeyRotatorError as e:
            log.warning("Failed to list github keys: %s", e)
            return RepoOutcome(repository.name, None, OutcomeStatus.FAILED, str(e))

        verdict = classify(
            repository,
            keys,
            title,
            lambda: self.backend.read_last_updated(path),
            now=self._now(),
            max_age=self.max_age,
        )
        decision = verdict.decision

        if not decision.rotates:
            if verdict.lookup_failed:
                log.warning("Skipping: %s", verdict.reason)
                return RepoOutcome(repository.name, decision, OutcomeStatus.SKIPPED, verdict.reason)
            log.debug("Skipping: %s", verdict.reason)
            return RepoOutcome(repository.name, decision, OutcomeStatus.SKIPPED, "")

        log.info("Decision %s: %s", decision, verdict.reason)
        error = self._execute(log, repository, title, path, verdict.existing)
        if error:
            return RepoOutcome(repository.name, decision, OutcomeStatus.FAILED, error)
        return RepoOutcome(repository.name, decision, OutcomeStatus.ROTATED, "")

    def _execute(
        self,
        log: ContextAdapter,
        repository: Repository,
        title: str,
        path: str,
        old_key: DeployKey | None,
    ) -> str:
        """Run the generate/publish/store/retire sequence. Returns an error message or ""."""
        try:
            pair = self.backend.generate_key_pair(title)
        except KeyRotatorError as e:
            log.warning("Failed to generate new key pair: %s", e)
            return f"generate key pair: {e}"

        try:
            self.backend.create_key(self.owner, repository.name, title, pair.public_material, repository.read_only)
        except KeyRotatorError as e:
            log.warning("Failed to create key on github: %s", e)
            return f"create key: {e}"

        try:
            self.backend.write_secret(path, pair.private_material)
        except KeyRotatorError as e:
            log.warning("Failed to write secret key: %s", e)
            return f"write secret: {e}"
        del pair

        log.info("Published new deploy key %r and stored private key at %s", title, path)

        if old_key is None:
            return ""

        # Someone may have just fetched the old private key
        self._sleep(self.grace_interval)
        try:
            self.backend.delete_key(self.owner, repository.name, old_key.id)
        except KeyRotatorError as e:
            log.warning("Failed to delete old github key %d: %s", old_key.id, e)
            return f"delete old key {old_key.id}: {e}"
        log.info("Deleted old deploy key %d", old_key.id)
        return ""
