"""
Secrets Manager storage for private keys and access tokens.

The time a secret was last written by keyrotator is kept in the secret's
description ("... Last updated: 2024-05-01T12:00:00Z"). Secrets Manager's own
LastChangedDate is not used: it gets touched by the service itself.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from keyrotator.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

DESCRIPTION_PREFIX = "Github credentials for Concourse. Last updated: "
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z")


def format_description(when: datetime) -> str:
    return DESCRIPTION_PREFIX + when.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_description(description: str | None) -> datetime | None:
    """Extract the last-updated timestamp. None when absent or unparsable."""
    if not description:
        return None
    match = _TIMESTAMP_RE.search(description)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(0), TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class SecretStore:
    """Read and write secrets in AWS Secrets Manager."""

    def __init__(
        self,
        client: Any = None,
        *,
        region: str = "",
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        if client is None:
            import boto3

            client = boto3.client("secretsmanager", region_name=region or None)
        self._client = client
        self._now = now

    def write_secret(self, path: str, value: str) -> None:
        """Create the secret if needed, then set its value and refresh the timestamp."""
        description = format_description(self._now())
        try:
            self._client.create_secret(Name=path, Description=description)
        except ClientError as e:
            if _error_code(e) != "ResourceExistsException":
                raise UpstreamError(f"creating secret {path}: {e}") from e
        except BotoCoreError as e:
            raise UpstreamError(f"creating secret {path}: {e}") from e

        try:
            self._client.update_secret(
                SecretId=path,
                Description=description,
                SecretString=value,
            )
        except (ClientError, BotoCoreError) as e:
            raise UpstreamError(f"updating secret {path}: {e}") from e
        logger.debug("Wrote secret %s", path)

    def read_last_updated(self, path: str) -> datetime | None:
        """Return when keyrotator last wrote ``path``.

        Raises NotFoundError when no secret exists. Returns None when the
        description carries no timestamp, meaning it was never written by us.
        """
        try:
            out = self._client.describe_secret(SecretId=path)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                raise NotFoundError(f"secret {path} does not exist") from e
            raise UpstreamError(f"describing secret {path}: {e}") from e
        except BotoCoreError as e:
            raise UpstreamError(f"describing secret {path}: {e}") from e

        updated = parse_description(out.get("Description"))
        if updated is None:
            logger.info("Secret %s has no last-updated timestamp in its description", path)
        return updated
