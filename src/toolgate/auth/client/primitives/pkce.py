"""PKCE (Proof Key for Code Exchange) generation.

Implements RFC 7636 verifier and S256 challenge generation, binding the
authorization code to this process so an intercepted code is useless.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import string

from toolgate.auth.client.models.security import PKCEPair

VERIFIER_ALPHABET = string.ascii_letters + string.digits + "-._~"


class PKCEManager:
    """Generates fresh PKCE pairs for authorization flows.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url)
    - Generates cryptographically secure code verifiers
    """

    def __init__(self, verifier_length: int = 128):
        if not (43 <= verifier_length <= 128):
            raise ValueError("verifier_length must be between 43 and 128")
        self.verifier_length = verifier_length

    def generate_pair(self) -> PKCEPair:
        """Generate a new verifier/challenge pair for one authorization flow."""
        code_verifier = self._generate_code_verifier()
        return PKCEPair(
            code_verifier=code_verifier,
            code_challenge=generate_code_challenge(code_verifier),
            code_challenge_method="S256",
        )

    def _generate_code_verifier(self) -> str:
        """Generate a cryptographically secure code verifier.

        RFC 7636 Section 4.1: code verifier must be 43-128 characters long
        and use only unreserved characters:
            [A-Z] / [a-z] / [0-9] / "-" / "." / "_" / "~"
        """
        return "".join(
            secrets.choice(VERIFIER_ALPHABET) for _ in range(self.verifier_length)
        )


def generate_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
    with the trailing padding removed.
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
