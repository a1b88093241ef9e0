"""GitHub App authentication and deploy key management."""

from keyrotator.github.app import GithubApp
from keyrotator.github.client import GithubClient

__all__ = ["GithubApp", "GithubClient"]
