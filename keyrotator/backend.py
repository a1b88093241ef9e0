"""
Credential backend: everything the rotation engine asks of the outside world.

The engine depends only on the CredentialBackend protocol. Backend is the
production implementation, combining the GitHub apps, Secrets Manager and
EC2. Every method raises a keyrotator.errors.UpstreamError subclass on
failure.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from keyrotator.aws.keypairs import KeyPairProvider
from keyrotator.aws.secrets import SecretStore
from keyrotator.config import Config
from keyrotator.github.app import GithubApp
from keyrotator.github.client import GithubClient
from keyrotator.models import DeployKey, KeyPair

logger = logging.getLogger(__name__)


class CredentialBackend(Protocol):
    def create_installation_token(self, owner: str) -> str: ...

    def list_keys(self, owner: str, repo: str) -> list[DeployKey]: ...

    def create_key(self, owner: str, repo: str, title: str, public_key: str, read_only: bool) -> None: ...

    def delete_key(self, owner: str, repo: str, key_id: int) -> None: ...

    def write_secret(self, path: str, value: str) -> None: ...

    def read_last_updated(self, path: str) -> datetime | None: ...

    def generate_key_pair(self, title: str) -> KeyPair: ...


class Backend:
    """Production credential backend."""

    def __init__(
        self,
        *,
        token_service: GithubApp,
        keys: GithubClient,
        secrets: SecretStore,
        keypairs: KeyPairProvider,
    ) -> None:
        self.token_service = token_service
        self.keys = keys
        self.secrets = secrets
        self.keypairs = keypairs

    @classmethod
    def from_config(cls, cfg: Config) -> Backend:
        """Build all clients from configuration. Raises ConfigurationError if incomplete."""
        cfg.validate()
        gh = cfg.github
        token_service = GithubApp(
            gh.token_service.integration_id,
            gh.token_service.private_key,
            api_url=gh.api_url,
            timeout=gh.timeout,
        )
        key_service = GithubApp(
            gh.key_service.integration_id,
            gh.key_service.private_key,
            api_url=gh.api_url,
            timeout=gh.timeout,
        )
        return cls(
            token_service=token_service,
            keys=GithubClient(key_service, api_url=gh.api_url, timeout=gh.timeout),
            secrets=SecretStore(region=cfg.aws.region),
            keypairs=KeyPairProvider(region=cfg.aws.region),
        )

    def close(self) -> None:
        self.token_service.close()
        self.keys.app.close()
        self.keys.close()

    def create_installation_token(self, owner: str) -> str:
        return self.token_service.create_installation_token(owner)

    def list_keys(self, owner: str, repo: str) -> list[DeployKey]:
        return self.keys.list_keys(owner, repo)

    def create_key(self, owner: str, repo: str, title: str, public_key: str, read_only: bool) -> None:
        self.keys.create_key(owner, repo, title, public_key, read_only)

    def delete_key(self, owner: str, repo: str, key_id: int) -> None:
        self.keys.delete_key(owner, repo, key_id)

    def write_secret(self, path: str, value: str) -> None:
        self.secrets.write_secret(path, value)

    def read_last_updated(self, path: str) -> datetime | None:
        return self.secrets.read_last_updated(path)

    def generate_key_pair(self, title: str) -> KeyPair:
        return self.keypairs.generate_key_pair(title)
