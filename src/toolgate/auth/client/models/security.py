"""Security-related models for the PKCE authorization flow."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PKCEPair:
    """PKCE (Proof Key for Code Exchange) verifier and challenge (RFC 7636).

    The verifier stays in the process until the token exchange; only the
    challenge is sent with the authorization request.
    """

    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (43 <= len(self.code_verifier) <= 128):
            raise ValueError("code_verifier must be 43-128 characters")
        if len(self.code_challenge) != 43:
            raise ValueError("code_challenge must be a 43 character S256 digest")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
