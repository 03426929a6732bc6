"""Exception hierarchy for PKCE token acquisition errors.

Every step of the acquisition flow has its own exception type. None of them
are retried: each one propagates to the caller of ``acquire_token``.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    pass


class DiscoveryError(OAuth2Error):
    """Raised when no OAuth metadata location can be found for an endpoint."""

    pass


class IssuerError(OAuth2Error):
    """Raised when issuer metadata is unreachable or malformed."""

    pass


class RegistrationError(OAuth2Error):
    """Raised when dynamic client registration fails."""

    pass


class ListenerError(OAuth2Error):
    """Raised when the local callback listener cannot be started."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when user authorization fails.

    Carries the provider's ``error`` code and ``error_description`` when the
    failure came back on the redirect.
    """

    def __init__(
        self,
        message: str,
        error: str | None = None,
        error_description: str | None = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_description = error_description


class AuthorizationTimeoutError(AuthorizationError):
    """Raised when the user does not complete authorization before the deadline."""

    pass


class TokenExchangeError(OAuth2Error):
    """Raised when the authorization code cannot be exchanged for tokens.

    ``status_code`` is None when the request never got an HTTP response.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
