"""
Centralized configuration for keyrotator.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from keyrotator.config import get_config
    cfg = get_config()
    print(cfg.owner)                 # "my-org"
    print(cfg.templates.key)         # "/concourse/{team}/{repository}-deploy-key"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from keyrotator.errors import ConfigurationError

DEFAULT_TOKEN_TEMPLATE = "/concourse/{team}/{owner}-access-token"
DEFAULT_KEY_TEMPLATE = "/concourse/{team}/{repository}-deploy-key"
DEFAULT_TITLE_TEMPLATE = "concourse-{team}-deploy-key"


@dataclass(frozen=True)
class GithubAppConfig:
    """Credentials for one GitHub App."""

    integration_id: int = 0
    private_key: str = field(default="", repr=False)

    @property
    def configured(self) -> bool:
        return bool(self.integration_id and self.private_key)


@dataclass(frozen=True)
class GithubConfig:
    """GitHub API parameters.

    Two apps are used: the token service mints the organisation access token
    handed to teams, the key service manages deploy keys.
    """

    api_url: str = "https://api.github.com"
    timeout: float = 10.0
    token_service: GithubAppConfig = field(default_factory=GithubAppConfig)
    key_service: GithubAppConfig = field(default_factory=GithubAppConfig)


@dataclass(frozen=True)
class AwsConfig:
    """AWS parameters. An empty region defers to the boto3 default chain."""

    region: str = ""
    dynamodb_table: str = ""


@dataclass(frozen=True)
class TemplateConfig:
    """Path and title templates. Fields: {team}, {repository}, {owner}."""

    token: str = DEFAULT_TOKEN_TEMPLATE
    key: str = DEFAULT_KEY_TEMPLATE
    title: str = DEFAULT_TITLE_TEMPLATE


@dataclass(frozen=True)
class Config:
    """Top-level keyrotator configuration."""

    owner: str = ""
    github: GithubConfig = field(default_factory=GithubConfig)
    aws: AwsConfig = field(default_factory=AwsConfig)
    templates: TemplateConfig = field(default_factory=TemplateConfig)

    # Rotation policy
    grace_interval: float = 1.0  # seconds between publishing a key and deleting the old one
    staleness_days: int = 7

    log_level: str = "INFO"

    def validate(self) -> None:
        """Raise ConfigurationError listing every missing required setting."""
        missing = []
        if not self.owner:
            missing.append("KEYROTATOR_GITHUB_OWNER")
        if not self.github.token_service.configured:
            missing.append("KEYROTATOR_TOKEN_SERVICE_INTEGRATION_ID/_PRIVATE_KEY")
        if not self.github.key_service.configured:
            missing.append("KEYROTATOR_KEY_SERVICE_INTEGRATION_ID/_PRIVATE_KEY")
        if missing:
            raise ConfigurationError(f"missing required settings: {', '.join(missing)}")

    def redacted(self) -> dict[str, object]:
        """Return a printable view of the config without secret material."""

        def _app(app: GithubAppConfig) -> dict[str, object]:
            return {
                "integration_id": app.integration_id,
                "private_key": "<set>" if app.private_key else "<unset>",
            }

        return {
            "owner": self.owner,
            "github": {
                "api_url": self.github.api_url,
                "timeout": self.github.timeout,
                "token_service": _app(self.github.token_service),
                "key_service": _app(self.github.key_service),
            },
            "aws": {"region": self.aws.region, "dynamodb_table": self.aws.dynamodb_table},
            "templates": {
                "token": self.templates.token,
                "key": self.templates.key,
                "title": self.templates.title,
            },
            "grace_interval": self.grace_interval,
            "staleness_days": self.staleness_days,
            "log_level": self.log_level,
        }


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _app_from_env(prefix: str) -> GithubAppConfig:
    return GithubAppConfig(
        integration_id=int(os.environ.get(f"{prefix}_INTEGRATION_ID", "0") or "0"),
        private_key=os.environ.get(f"{prefix}_PRIVATE_KEY", ""),
    )


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    github = GithubConfig(
        api_url=os.environ.get("KEYROTATOR_GITHUB_API_URL", "https://api.github.com"),
        timeout=float(os.environ.get("KEYROTATOR_GITHUB_TIMEOUT", "10")),
        token_service=_app_from_env("KEYROTATOR_TOKEN_SERVICE"),
        key_service=_app_from_env("KEYROTATOR_KEY_SERVICE"),
    )

    aws = AwsConfig(
        region=os.environ.get("KEYROTATOR_AWS_REGION", os.environ.get("AWS_REGION", "")),
        dynamodb_table=os.environ.get("KEYROTATOR_DYNAMODB_TABLE", ""),
    )

    templates = TemplateConfig(
        token=os.environ.get("KEYROTATOR_TOKEN_TEMPLATE", DEFAULT_TOKEN_TEMPLATE),
        key=os.environ.get("KEYROTATOR_KEY_TEMPLATE", DEFAULT_KEY_TEMPLATE),
        title=os.environ.get("KEYROTATOR_TITLE_TEMPLATE", DEFAULT_TITLE_TEMPLATE),
    )

    return Config(
        owner=os.environ.get("KEYROTATOR_GITHUB_OWNER", ""),
        github=github,
        aws=aws,
        templates=templates,
        grace_interval=float(os.environ.get("KEYROTATOR_GRACE_INTERVAL", "1")),
        staleness_days=int(os.environ.get("KEYROTATOR_STALENESS_DAYS", "7")),
        log_level=os.environ.get("KEYROTATOR_LOG_LEVEL", "INFO").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
