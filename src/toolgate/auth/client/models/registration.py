"""Client registration models for OAuth 2.0 Dynamic Client Registration.

Contains models for client metadata (RFC 7591) and registration results.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class ClientMetadata(BaseModel):
    """OAuth 2.0 Client Metadata for dynamic registration (RFC 7591).

    Defaults describe a public client: no secret, authorization code grant
    only, authenticated at the token endpoint by PKCE alone. Whether a
    redirect URI is acceptable is left to the authorization server.
    """

    client_name: str
    redirect_uris: list[str] = Field(min_length=1, max_length=1)

    scope: str | None = None

    token_endpoint_auth_method: str = "none"  # Public client
    grant_types: list[str] = Field(default=["authorization_code"])
    response_types: list[str] = Field(default=["code"])


class ClientCredentials(BaseModel):
    """OAuth 2.0 Client Credentials from registration response."""

    model_config = ConfigDict(extra="ignore")

    client_id: str
    client_secret: str | None = None  # None for public clients
    client_id_issued_at: int | None = None
    client_secret_expires_at: int | None = None


@dataclass(frozen=True)
class ClientRegistration:
    """Complete client registration result.

    Only lives for a single acquisition; nothing persists it.
    """

    metadata: ClientMetadata
    credentials: ClientCredentials
    registration_endpoint: str

    @property
    def client_id(self) -> str:
        return self.credentials.client_id
