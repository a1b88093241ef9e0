"""
Deploy key management on GitHub repositories.

Calls are made with an installation token of the key service app. Listing
fetches a single page; repositories with more keys than fit on one page are
out of scope.
"""

from __future__ import annotations

import logging

import httpx

from keyrotator.errors import UpstreamError
from keyrotator.github.app import ACCEPT, API_VERSION, GithubApp, json_body, request
from keyrotator.models import DeployKey

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class GithubClient:
    """List, create and delete deploy keys."""

    def __init__(
        self,
        app: GithubApp,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.app = app
        self._client = client or httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": ACCEPT, "X-GitHub-Api-Version": API_VERSION},
        )

    def close(self) -> None:
        self._client.close()

    def _headers(self, owner: str) -> dict[str, str]:
        return {"Authorization": f"token {self.app.installation_token(owner)}"}

    def list_keys(self, owner: str, repo: str) -> list[DeployKey]:
        resp = request(
            self._client,
            "GET",
            f"/repos/{owner}/{repo}/keys",
            headers=self._headers(owner),
            params={"per_page": PAGE_SIZE},
        )
        try:
            return [
                DeployKey(id=int(k["id"]), title=k.get("title") or "", read_only=k.get("read_only"))
                for k in json_body(resp)
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamError(f"unexpected deploy key listing for {owner}/{repo}: {e}") from e

    def create_key(
        self,
        owner: str,
        repo: str,
        title: str,
        public_key: str,
        read_only: bool,
    ) -> None:
        # A 2xx means the key is registered; the response body is not needed
        request(
            self._client,
            "POST",
            f"/repos/{owner}/{repo}/keys",
            headers=self._headers(owner),
            json={"title": title, "key": public_key.strip(), "read_only": read_only},
        )

    def delete_key(self, owner: str, repo: str, key_id: int) -> None:
        request(
            self._client,
            "DELETE",
            f"/repos/{owner}/{repo}/keys/{key_id}",
            headers=self._headers(owner),
        )
