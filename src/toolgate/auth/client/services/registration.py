"""OAuth 2.0 dynamic client registration service.

Implements RFC 7591 (OAuth 2.0 Dynamic Client Registration Protocol)
to obtain an ephemeral public client for a single token acquisition.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from toolgate.auth.client.models.errors import RegistrationError
from toolgate.auth.client.models.registration import (
    ClientCredentials,
    ClientMetadata,
    ClientRegistration,
)

logger = logging.getLogger(__name__)

_ERROR_CODE_MESSAGES = {
    "invalid_redirect_uri": "Invalid redirect URI",
    "invalid_client_metadata": "Invalid client metadata",
    "invalid_software_statement": "Invalid software statement",
}

_STATUS_MESSAGES = {
    401: "Registration endpoint requires an initial access token",
    403: "Registration forbidden by authorization server policy",
}


class OAuth2Registration:
    """Registers public OAuth clients with an authorization server.

    There is no fallback to a statically configured client: if the server
    refuses registration, acquisition stops with a RegistrationError.
    """

    def __init__(
        self, timeout: float | None = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize OAuth registration.

        Args:
            timeout: HTTP request timeout in seconds, None for no timeout
            http_client: Optional pre-configured client
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def register_client(
        self,
        registration_endpoint: str | None,
        client_metadata: ClientMetadata,
    ) -> ClientRegistration:
        """Register a new public OAuth client with the authorization server.

        Args:
            registration_endpoint: Client registration endpoint URL, None when
                the server does not advertise one
            client_metadata: Client metadata to register

        Returns:
            Complete client registration result

        Raises:
            RegistrationError: If registration fails
        """
        if not registration_endpoint:
            raise RegistrationError(
                "Authorization server does not support dynamic client registration"
            )

        logger.debug(f"Registering client at {registration_endpoint}")

        try:
            response = await self._http_client.post(
                registration_endpoint,
                json=client_metadata.model_dump(exclude_none=True, mode="json"),
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise RegistrationError(f"HTTP error during registration: {e}") from e

        # RFC 7591 specifies 201; some servers answer 200
        if response.status_code in (200, 201):
            return self._handle_successful_registration(
                response, registration_endpoint, client_metadata
            )
        self._handle_registration_error(response)

    def _handle_successful_registration(
        self,
        response: httpx.Response,
        registration_endpoint: str,
        original_metadata: ClientMetadata,
    ) -> ClientRegistration:
        try:
            response_data = response.json()
        except ValueError as e:
            raise RegistrationError(f"Invalid registration response format: {e}") from e

        if not isinstance(response_data, dict) or "client_id" not in response_data:
            raise RegistrationError("Registration response missing required client_id")

        try:
            credentials = ClientCredentials.model_validate(response_data)
        except ValidationError as e:
            raise RegistrationError(f"Invalid registration response format: {e}") from e

        logger.info(
            f"Registered client {credentials.client_id} at {registration_endpoint}"
        )

        return ClientRegistration(
            metadata=original_metadata,
            credentials=credentials,
            registration_endpoint=registration_endpoint,
        )

    def _handle_registration_error(self, response: httpx.Response) -> None:
        """Raise a RegistrationError describing a rejected registration."""
        try:
            error_data = response.json()
        except ValueError:
            # Fallback for non-JSON error responses
            raise RegistrationError(
                f"Registration failed with HTTP {response.status_code}: {response.text}"
            )

        if not isinstance(error_data, dict):
            error_data = {}
        error_code = error_data.get("error", "unknown_error")
        error_description = error_data.get(
            "error_description", "No description provided"
        )

        logger.error(
            f"Client registration failed with {response.status_code}: "
            f"{error_code} - {error_description}"
        )

        if error_code in _ERROR_CODE_MESSAGES:
            raise RegistrationError(
                f"{_ERROR_CODE_MESSAGES[error_code]}: {error_description}"
            )
        if response.status_code in _STATUS_MESSAGES:
            raise RegistrationError(_STATUS_MESSAGES[response.status_code])
        raise RegistrationError(
            f"Registration rejected with {response.status_code}: {error_code} "
            f"({error_description})"
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
