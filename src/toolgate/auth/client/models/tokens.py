"""Token request and token set models.

The token request is form-encoded for the token endpoint; the token set is
handed back to the caller unchanged, including any provider-specific fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code token request (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636) in place of a client secret.
    """

    token_endpoint: str
    code: str = field(repr=False)
    redirect_uri: str
    client_id: str
    code_verifier: str = field(repr=False)

    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "code_verifier": self.code_verifier,
        }


class TokenSet(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1).

    Extra fields returned by the provider are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "Bearer"
    id_token: str | None = None
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: str | None = None
