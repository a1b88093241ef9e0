"""
GitHub App authentication.

An app authenticates as itself with a short-lived RS256 JWT, looks up its
installation on an organisation, and exchanges the JWT for an installation
access token scoped to that organisation.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import jwt

from keyrotator.errors import ConfigurationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

ACCEPT = "application/vnd.github+json"
API_VERSION = "2022-11-28"

# GitHub rejects app JWTs valid for more than 10 minutes
JWT_TTL_SECONDS = 540
# Backdate iat to tolerate clock drift
JWT_CLOCK_SKEW = 60
# Refresh cached installation tokens this long before they expire
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


def request(
    client: httpx.Client,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, translating transport errors and 4xx/5xx into UpstreamError."""
    try:
        resp = client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise UpstreamError(f"{method} {url}: {e}") from e
    if resp.status_code == 404:
        raise NotFoundError(f"{method} {url}: 404 Not Found")
    if resp.status_code >= 400:
        raise UpstreamError(f"{method} {url}: HTTP {resp.status_code}: {resp.text[:200]}")
    return resp


def json_body(resp: httpx.Response) -> Any:
    """Decode a JSON response body, raising UpstreamError when it is not JSON."""
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamError(f"{resp.request.method} {resp.request.url.path}: invalid JSON body: {e}") from e


class GithubApp:
    """Issues installation tokens for one GitHub App."""

    def __init__(
        self,
        integration_id: int,
        private_key: str,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not integration_id or not private_key:
            raise ConfigurationError("GitHub App requires an integration id and a private key")
        self.integration_id = integration_id
        self._private_key = private_key
        self._client = client or httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": ACCEPT, "X-GitHub-Api-Version": API_VERSION},
        )
        self._tokens: dict[str, tuple[str, datetime]] = {}

    def close(self) -> None:
        self._client.close()

    def app_jwt(self) -> str:
        """Sign a JWT identifying the app itself."""
        now = int(time.time())
        payload = {
            "iat": now - JWT_CLOCK_SKEW,
            "exp": now + JWT_TTL_SECONDS,
            "iss": str(self.integration_id),
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise ConfigurationError(f"invalid private key for app {self.integration_id}: {e}") from e

    def _app_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.app_jwt()}"}

    def installation_id(self, owner: str) -> int:
        """Find the app's installation on an organisation (or user account)."""
        headers = self._app_headers()
        try:
            resp = request(self._client, "GET", f"/orgs/{owner}/installation", headers=headers)
        except NotFoundError:
            resp = request(self._client, "GET", f"/users/{owner}/installation", headers=headers)
        try:
            return int(json_body(resp)["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"installation response without an id for {owner}") from e

    def create_installation_token(self, owner: str) -> str:
        """Mint a fresh installation token for ``owner``, replacing any cached one."""
        token, expires_at = self._mint(owner)
        self._tokens[owner] = (token, expires_at)
        return token

    def installation_token(self, owner: str) -> str:
        """Return a usable installation token, reusing one until it nears expiry."""
        cached = self._tokens.get(owner)
        if cached and cached[1] - TOKEN_REFRESH_MARGIN > datetime.now(UTC):
            return cached[0]
        return self.create_installation_token(owner)

    def _mint(self, owner: str) -> tuple[str, datetime]:
        installation = self.installation_id(owner)
        resp = request(
            self._client,
            "POST",
            f"/app/installations/{installation}/access_tokens",
            headers=self._app_headers(),
        )
        data = json_body(resp)
        try:
            token = data["token"]
            expires_at = _parse_expiry(data.get("expires_at"))
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamError(f"installation token response without a token for {owner}") from e
        logger.debug("Minted installation token for %s (app %s)", owner, self.integration_id)
        return token, expires_at


def _parse_expiry(value: str | None) -> datetime:
    if not value:
        return datetime.now(UTC)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(UTC)
