"""Environment-based configuration.

Scripts call ``load_dotenv()`` first, so values may come from a ``.env`` file
or the process environment. Every setting has a documented default except the
credentials, which are checked with ``require_env``.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass

DEFAULT_REDIRECT_URI = "http://localhost:3000/callback"
DEFAULT_SCOPE = "read:jira-work"
DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class MissingSettingError(Exception):
    """Raised when a required environment variable is not set."""

    def __init__(self, name: str, hint: str | None = None):
        self.name = name
        self.hint = hint
        message = (
            f"Error: {name} not found in environment variables.\n"
            f"Please check your .env file and ensure {name} is set."
        )
        if hint:
            message += f"\n{hint}"
        super().__init__(message)


def require_env(name: str, hint: str | None = None) -> str:
    """Return a required environment variable.

    Raises:
        MissingSettingError: If the variable is unset or empty
    """
    value = os.getenv(name)
    if not value:
        raise MissingSettingError(name, hint)
    return value


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def env_float(name: str, default: float | None) -> float | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class AcquirerSettings:
    """Defaults for PKCE token acquisition."""

    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
    open_browser: bool = True
    callback_timeout: float | None = None

    @classmethod
    def from_env(cls) -> AcquirerSettings:
        return cls(
            redirect_uri=os.getenv("OAUTH_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            scope=os.getenv("OAUTH_SCOPE") or DEFAULT_SCOPE,
            open_browser=env_bool("OAUTH_OPEN_BROWSER", True),
            callback_timeout=env_float("OAUTH_CALLBACK_TIMEOUT", None),
        )


@dataclass(frozen=True)
class GitProxySettings:
    """Configuration for the GitHub OAuth proxy service."""

    github_client_id: str
    github_client_secret: str
    redirect_uri: str = "http://localhost:3000/auth/callback"
    service_url: str = "http://localhost:3000"
    port: int = 3000
    credentials_dir: str = tempfile.gettempdir()
    mcp_git_endpoint: str | None = None
    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL

    @classmethod
    def from_env(cls) -> GitProxySettings:
        """Load settings, requiring the GitHub OAuth app credentials."""
        return cls(
            github_client_id=require_env("GITHUB_CLIENT_ID"),
            github_client_secret=require_env("GITHUB_CLIENT_SECRET"),
            redirect_uri=os.getenv("GIT_OAUTH_REDIRECT_URI")
            or "http://localhost:3000/auth/callback",
            service_url=os.getenv("SERVICE_URL") or "http://localhost:3000",
            port=env_int("PORT", 3000),
            credentials_dir=os.getenv("GIT_CREDENTIALS_DIR") or tempfile.gettempdir(),
            mcp_git_endpoint=os.getenv("MCP_GIT_ENDPOINT") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL,
        )
