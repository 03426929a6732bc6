"""Authorization code token exchange service.

Implements the RFC 6749 token endpoint request with the PKCE (RFC 7636)
code_verifier standing in for a client secret.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from toolgate.auth.client.models.errors import TokenExchangeError
from toolgate.auth.client.models.tokens import TokenRequest, TokenSet

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes for token sets.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    """

    def __init__(
        self, timeout: float | None = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize OAuth token manager.

        Args:
            timeout: HTTP request timeout in seconds, None for no timeout
            http_client: Optional pre-configured client
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(self, token_request: TokenRequest) -> TokenSet:
        """Exchange an authorization code for a token set.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenSet: The parsed token endpoint response

        Raises:
            TokenExchangeError: On a non-2xx status (status and body preserved),
                a transport failure, or an unusable success body
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        form_data = token_request.to_form_data()

        # Never log the code or verifier
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise TokenExchangeError(f"HTTP error during token exchange: {e}") from e

        if not response.is_success:
            logger.warning(f"Token exchange failed with {response.status_code}")
            raise TokenExchangeError(
                f"Token exchange failed: {response.status_code} "
                f"{response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        return self._parse_token_set(response)

    def _parse_token_set(self, response: httpx.Response) -> TokenSet:
        try:
            response_data = response.json()
        except ValueError as e:
            raise TokenExchangeError(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(response_data, dict) or "access_token" not in response_data:
            raise TokenExchangeError(
                "Token response missing required access_token",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token_set = TokenSet.model_validate(response_data)
        except ValidationError as e:
            raise TokenExchangeError(
                f"Invalid token response format: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

        logger.info("Token exchange successful")
        return token_set

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
