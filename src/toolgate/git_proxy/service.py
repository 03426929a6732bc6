"""GitHub OAuth proxy service.

Lets a user authorize GitHub access once through the web flow; the service
keeps the resulting token and uses it for later git operations on the user's
behalf. State and token records live in injected ``KeyValueStore``s.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

import httpx

from toolgate.config import GitProxySettings
from toolgate.git_proxy.store import KeyValueStore

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"

STATE_TTL_SECONDS = 5 * 60

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class GitOAuthError(Exception):
    """Raised when GitHub rejects a code exchange or API call."""

    pass


@dataclass(frozen=True)
class GitHubToken:
    access_token: str
    scope: str = ""
    token_type: str = "bearer"

    @property
    def scopes(self) -> list[str]:
        return [s for s in self.scope.split(",") if s]


@dataclass(frozen=True)
class TokenRecord:
    """What the service remembers about a user's authorization."""

    token: str
    timestamp: float
    provider: str = "github"


class GitOAuthService:
    def __init__(
        self,
        settings: GitProxySettings,
        state_store: KeyValueStore,
        token_store: KeyValueStore,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.settings = settings
        self._states = state_store
        self._tokens = token_store
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    def generate_auth_url(
        self, user_id: str, scopes: list[str] | tuple[str, ...] = ("repo",)
    ) -> tuple[str, str]:
        """Build the GitHub authorization URL for a user.

        Returns:
            Tuple of (authorization_url, state)
        """
        state = self._generate_state(user_id)
        params = {
            "client_id": self.settings.github_client_id,
            "redirect_uri": self.settings.redirect_uri,
            "scope": ",".join(scopes),
            "state": state,
            "allow_signup": "false",
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}", state

    def validate_state(self, state: str) -> str | None:
        """Consume a state value and return the user it was issued for.

        States are single use and expire after five minutes; unknown, reused
        or expired states return None.
        """
        session = self._states.get(state)
        if session is None:
            return None
        self._states.delete(state)
        return session["user_id"]

    async def exchange_code_for_token(self, code: str) -> GitHubToken:
        """Exchange the callback code for a GitHub access token.

        Raises:
            GitOAuthError: If GitHub reports an error
        """
        try:
            response = await self._http_client.post(
                GITHUB_TOKEN_URL,
                json={
                    "client_id": self.settings.github_client_id,
                    "client_secret": self.settings.github_client_secret,
                    "code": code,
                    "redirect_uri": self.settings.redirect_uri,
                },
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise GitOAuthError(f"HTTP error during token exchange: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise GitOAuthError(
                f"Invalid token response from GitHub ({response.status_code})"
            ) from e

        if not isinstance(data, dict):
            raise GitOAuthError(
                f"Unexpected token response from GitHub ({response.status_code})"
            )
        if data.get("error"):
            raise GitOAuthError(
                f"OAuth error: {data.get('error_description') or data['error']}"
            )
        if "access_token" not in data:
            raise GitOAuthError("GitHub token response missing access_token")

        return GitHubToken(
            access_token=data["access_token"],
            scope=data.get("scope", ""),
            token_type=data.get("token_type", "bearer"),
        )

    def configure_git_credentials(self, user_id: str, access_token: str) -> dict[str, Any]:
        """Remember the user's token and write a git credential store file.

        Returns:
            The credential file path and the git config pointing at it
        """
        self._tokens.set(
            user_id, TokenRecord(token=access_token, timestamp=time.time())
        )

        safe_user = _UNSAFE_FILENAME_CHARS.sub("_", user_id)
        credential_file = Path(self.settings.credentials_dir) / f"git-credentials-{safe_user}"
        fd = os.open(credential_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(f"https://{access_token}@github.com\n")

        logger.info(f"Configured git credentials for user {user_id}")
        return {
            "configured": True,
            "credentialFile": str(credential_file),
            "gitConfig": {
                "credential.helper": f"store --file={credential_file}",
                "user.name": "OAuth User",
                "user.email": "oauth@your-service.com",
            },
        }

    async def get_user_info(self, access_token: str) -> dict[str, Any]:
        """Fetch the authorizing user's GitHub profile.

        Raises:
            GitOAuthError: If GitHub does not return the profile
        """
        try:
            response = await self._http_client.get(
                f"{GITHUB_API_URL}/user",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github.v3+json",
                },
            )
        except httpx.HTTPError as e:
            raise GitOAuthError(f"HTTP error fetching user info: {e}") from e
        if not response.is_success:
            raise GitOAuthError(f"Failed to fetch user info ({response.status_code})")
        return response.json()

    def get_token(self, user_id: str) -> TokenRecord | None:
        return self._tokens.get(user_id)

    async def close(self) -> None:
        await self._http_client.aclose()

    def _generate_state(self, user_id: str) -> str:
        state = f"{user_id}_{int(time.time() * 1000)}_{secrets.token_urlsafe(12)}"
        self._states.set(
            state, {"user_id": user_id, "timestamp": time.time()}, ttl=STATE_TTL_SECONDS
        )
        return state
