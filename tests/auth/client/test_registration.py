"""Tests for dynamic client registration.

Covers the public-client request shape, accepted success codes, and the
mapping of rejected registrations to RegistrationError.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pydantic import ValidationError

from toolgate.auth.client.models.errors import RegistrationError
from toolgate.auth.client.models.registration import (
    ClientMetadata,
    ClientRegistration,
)
from toolgate.auth.client.services.registration import OAuth2Registration

REGISTRATION_ENDPOINT = "https://auth.example.com/register"


def _response(status_code, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


class TestSuccessfulRegistration:
    def setup_method(self):
        # Arrange
        self.registration_service = OAuth2Registration()
        self.registration_service._http_client = AsyncMock()
        self.client_metadata = ClientMetadata(
            client_name="MCP OAuth Client",
            redirect_uris=["http://localhost:3000/callback"],
        )

    async def test_registers_public_client(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            201,
            {
                "client_id": "generated-client-id-123",
                "client_name": "MCP OAuth Client",
                "client_id_issued_at": 1640995200,
                "unexpected_field": "ignored",
            },
        )

        # Act
        result = await self.registration_service.register_client(
            REGISTRATION_ENDPOINT, self.client_metadata
        )

        # Assert
        assert isinstance(result, ClientRegistration)
        assert result.client_id == "generated-client-id-123"
        assert result.credentials.client_secret is None
        assert result.metadata == self.client_metadata
        assert result.registration_endpoint == REGISTRATION_ENDPOINT

        call_args = self.registration_service._http_client.post.call_args
        assert call_args[0][0] == REGISTRATION_ENDPOINT
        request_json = call_args[1]["json"]
        assert request_json == {
            "client_name": "MCP OAuth Client",
            "redirect_uris": ["http://localhost:3000/callback"],
            "token_endpoint_auth_method": "none",
            "grant_types": ["authorization_code"],
            "response_types": ["code"],
        }
        headers = call_args[1]["headers"]
        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"

    async def test_accepts_200_response(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            200, {"client_id": "abc"}
        )

        # Act
        result = await self.registration_service.register_client(
            REGISTRATION_ENDPOINT, self.client_metadata
        )

        # Assert
        assert result.client_id == "abc"


class TestRegistrationErrors:
    def setup_method(self):
        self.registration_service = OAuth2Registration()
        self.registration_service._http_client = AsyncMock()
        self.client_metadata = ClientMetadata(
            client_name="MCP OAuth Client",
            redirect_uris=["http://localhost:3000/callback"],
        )

    async def test_missing_registration_endpoint(self):
        # Act & Assert
        with pytest.raises(RegistrationError, match="does not support dynamic"):
            await self.registration_service.register_client(None, self.client_metadata)
        self.registration_service._http_client.post.assert_not_called()

    async def test_invalid_redirect_uri_error(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            400,
            {
                "error": "invalid_redirect_uri",
                "error_description": "Redirect URI not allowed",
            },
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match="Invalid redirect URI"):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )

    async def test_invalid_client_metadata_error(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            400, {"error": "invalid_client_metadata", "error_description": "bad"}
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match="Invalid client metadata: bad"):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )

    @pytest.mark.parametrize(
        "status_code,message",
        [(401, "initial access token"), (403, "Registration forbidden")],
    )
    async def test_auth_required_errors(self, status_code, message):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            status_code, {"error": "access_denied"}
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match=message):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )

    async def test_non_json_error_response(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            500, text="Internal Server Error"
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match="HTTP 500: Internal Server Error"):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )

    async def test_success_response_missing_client_id(self):
        # Arrange
        self.registration_service._http_client.post.return_value = _response(
            201, {"client_name": "no id"}
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match="missing required client_id"):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )

    async def test_transport_error(self):
        # Arrange
        self.registration_service._http_client.post.side_effect = httpx.ConnectError(
            "Connection refused"
        )

        # Act & Assert
        with pytest.raises(RegistrationError, match="HTTP error during registration"):
            await self.registration_service.register_client(
                REGISTRATION_ENDPOINT, self.client_metadata
            )


class TestClientMetadata:
    @pytest.mark.parametrize(
        "uri",
        [
            "http://localhost:3000/callback",
            "http://127.0.0.1:8080/cb",
            "https://app.example.com/callback",
            "http://192.168.1.10:3999/callback",
        ],
    )
    def test_redirect_uri_is_left_to_the_server(self, uri):
        metadata = ClientMetadata(client_name="test", redirect_uris=[uri])

        assert metadata.redirect_uris == [uri]

    def test_requires_exactly_one_redirect_uri(self):
        with pytest.raises(ValidationError):
            ClientMetadata(client_name="test", redirect_uris=[])
        with pytest.raises(ValidationError):
            ClientMetadata(
                client_name="test",
                redirect_uris=["http://localhost/a", "http://localhost/b"],
            )
