"""
DynamoDB repository source.

Reads every item of the repos table with a single Scan. Scan pages are capped
at 1 MB; a truncated result is logged, not followed.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from keyrotator.errors import RepoListError
from keyrotator.models import Repository, parse_flag

logger = logging.getLogger(__name__)

# Must match the Terraform that creates the table
REPO_NAME_ATTRIBUTE = "repo_name"
READ_ONLY_ATTRIBUTE = "read_only"


class DynamoDBRepoSource:
    """List repositories from a DynamoDB table."""

    def __init__(self, table_name: str, *, table: Any = None, region: str = "") -> None:
        self.table_name = table_name
        if table is None:
            import boto3

            table = boto3.resource("dynamodb", region_name=region or None).Table(table_name)
        self._table = table

    def list(self) -> list[Repository]:
        try:
            out = self._table.scan()
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to scan DynamoDB table %s: %s", self.table_name, e)
            raise RepoListError(f"scanning DynamoDB table {self.table_name}: {e}") from e

        if out.get("LastEvaluatedKey"):
            # TODO: follow LastEvaluatedKey once a table outgrows one 1 MB scan page
            logger.warning(
                "DynamoDB table %s has more items than one scan page; the rest are ignored",
                self.table_name,
            )

        repos: list[Repository] = []
        for item in out.get("Items", []):
            name = item.get(REPO_NAME_ATTRIBUTE)
            if not name or not isinstance(name, str):
                logger.warning("Skipping item without %s in %s: %r", REPO_NAME_ATTRIBUTE, self.table_name, item)
                continue
            try:
                read_only = parse_flag(item.get(READ_ONLY_ATTRIBUTE))
            except ValueError as e:
                logger.warning("Skipping %s in %s: %s %s", name, self.table_name, READ_ONLY_ATTRIBUTE, e)
                continue
            repos.append(Repository(name=name, read_only=read_only))
        logger.debug("Listed %d repositories from %s", len(repos), self.table_name)
        return repos
