"""PKCE (Proof Key for Code Exchange) and OAuth state helpers.

RFC 7636: https://www.rfc-editor.org/rfc/rfc7636

The code_verifier stays in an HttpOnly cookie for the length of one
authorization round trip and is only sent to the identity provider in the
final code exchange. The authorize request carries the derived
code_challenge instead.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

__all__ = ["PkcePair", "generate_pkce_pair", "compute_code_challenge", "generate_oauth_state"]

VERIFIER_BYTES = 32
STATE_BYTES = 24


@dataclass(frozen=True)
class PkcePair:
    code_verifier: str
    code_challenge: str


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> PkcePair:
    """Generate a fresh code_verifier and its S256 code_challenge.

    Example:
        >>> pair = generate_pkce_pair()
        >>> len(pair.code_verifier), len(pair.code_challenge)
        (43, 43)
    """
    code_verifier = _b64url(secrets.token_bytes(VERIFIER_BYTES))
    return PkcePair(code_verifier=code_verifier, code_challenge=compute_code_challenge(code_verifier))


def compute_code_challenge(code_verifier: str) -> str:
    """code_challenge = BASE64URL(SHA256(ASCII(code_verifier))), no padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_oauth_state() -> str:
    """Unpredictable anti-CSRF token, compared by exact string equality on callback."""
    return _b64url(secrets.token_bytes(STATE_BYTES))
