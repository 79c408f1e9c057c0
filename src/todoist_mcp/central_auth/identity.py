"""GitHub as the upstream identity provider.

Both authorization flows send the user agent to GitHub and come back through
the same callback.  This client performs the two server-side calls of that
round trip: exchanging the provider code for a provider access token, and
reading the login handle of the authenticated user.

The calls use :mod:`requests` with bounded ``(connect, read)`` timeouts; HTTP
handlers run them off the event loop.  Provider secrets and tokens are never
logged.
"""

from __future__ import annotations

import logging
from typing import Final
from urllib.parse import urlencode

import requests

from todoist_mcp.central_auth.errors import IdentityProviderError

_LOG = logging.getLogger("todoist-mcp.central_auth.identity")

AUTHORIZE_URL: Final[str] = "https://github.com/login/oauth/authorize"
TOKEN_URL: Final[str] = "https://github.com/login/oauth/access_token"
USER_URL: Final[str] = "https://api.github.com/user"
IDENTITY_SCOPE: Final[str] = "user:email"

_TIMEOUT: Final[tuple[int, int]] = (5, 20)


class GitHubIdentityProvider:
    """Minimal GitHub OAuth App client."""

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        callback_url: str | None,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.callback_url = callback_url

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self._client_secret and self.callback_url)

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise IdentityProviderError("GitHub OAuth environment not configured")

    def build_authorize_url(self, state: str) -> str:
        """Return the GitHub authorize URL carrying *state*."""
        self._ensure_configured()
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.callback_url,
                "state": state,
                "scope": IDENTITY_SCOPE,
            }
        )
        return f"{AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> str:
        """Exchange a provider *code* for a provider access token."""
        self._ensure_configured()
        try:
            resp = requests.post(
                TOKEN_URL,
                json={
                    "client_id": self.client_id,
                    "client_secret": self._client_secret,
                    "code": code,
                    "redirect_uri": self.callback_url,
                },
                headers={"Accept": "application/json"},
                timeout=_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise IdentityProviderError(f"GitHub token request failed: {exc}") from exc

        if not resp.ok:
            raise IdentityProviderError(
                f"GitHub token endpoint returned {resp.status_code}: {resp.text[:200]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise IdentityProviderError("GitHub token response is not JSON") from exc

        if data.get("error"):
            raise IdentityProviderError(
                data.get("error_description") or str(data["error"])
            )
        access_token = data.get("access_token")
        if not access_token:
            raise IdentityProviderError("GitHub token response missing access_token")
        return access_token

    def fetch_login(self, access_token: str) -> str:
        """Return the ``login`` handle of the user owning *access_token*."""
        try:
            resp = requests.get(
                USER_URL,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                    "User-Agent": "todoist-mcp-server",
                },
                timeout=_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise IdentityProviderError(f"GitHub user request failed: {exc}") from exc

        if not resp.ok:
            raise IdentityProviderError(
                f"GitHub user endpoint returned {resp.status_code}: {resp.text[:200]}"
            )
        try:
            login = resp.json().get("login")
        except ValueError as exc:
            raise IdentityProviderError("GitHub user response is not JSON") from exc
        if not login:
            raise IdentityProviderError("GitHub user response missing login")

        _LOG.debug("Resolved GitHub identity login=%s", login)
        return str(login)

    def resolve_identity(self, code: str) -> str:
        """Run the full code → token → login round trip."""
        return self.fetch_login(self.exchange_code(code))
