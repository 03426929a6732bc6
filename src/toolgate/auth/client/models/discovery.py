"""Discovery-related models for OAuth authorization server metadata.

Contains the resolved discovery location and the Authorization Server
Metadata (RFC 8414) / OpenID Connect discovery document.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DiscoverySource(str, Enum):
    """Strategy that produced a discovery URL, in the order they are tried."""

    WWW_AUTHENTICATE = "www_authenticate"
    OAUTH_AUTHORIZATION_SERVER = "oauth_authorization_server"
    OPENID_CONFIGURATION = "openid_configuration"


@dataclass(frozen=True)
class DiscoveryDescriptor:
    """Where OAuth metadata for an endpoint can be fetched."""

    url: str
    source: DiscoverySource


class IssuerMetadata(BaseModel):
    """Endpoints of the discovered authorization server.

    Parsed from either an RFC 8414 document or an OpenID Connect discovery
    document; fields the flow does not use are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    issuer: str
    authorization_endpoint: str
    token_endpoint: str

    # Dynamic registration (RFC 7591)
    registration_endpoint: str | None = None

    scopes_supported: list[str] | None = None
    response_types_supported: list[str] = Field(default=["code"])
    code_challenge_methods_supported: list[str] | None = None

    def supports_s256(self) -> bool:
        """Whether the server advertises S256, or advertises nothing at all."""
        if self.code_challenge_methods_supported is None:
            return True
        return "S256" in self.code_challenge_methods_supported


class ProtectedResourceMetadata(BaseModel):
    """OAuth 2.0 Protected Resource Metadata (RFC 9728).

    Some servers point the ``WWW-Authenticate`` challenge at this document
    rather than at the authorization server metadata itself.
    """

    model_config = ConfigDict(extra="ignore")

    resource: str | None = None
    authorization_servers: list[str] = Field(min_length=1)
