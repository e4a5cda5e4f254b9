"""PKCE (Proof Key for Code Exchange) implementation.

RFC 7636 - Proof Key for Code Exchange for OAuth 2.0 public clients.
Uses S256 challenge method (SHA-256 hash of the code verifier).
"""

from __future__ import annotations

import hashlib
import secrets

from base64 import urlsafe_b64encode
from dataclasses import dataclass


def generate_random_string(byte_length: int = 32) -> str:
    """Draw ``byte_length`` secure random bytes as unpadded base64url.

    Parameters
    ----------
    byte_length : int
        Number of random bytes (default 32).

    Returns
    -------
    str
        URL-safe base64 text without ``=`` padding.
    """
    if byte_length <= 0:
        msg = f"byte_length must be positive, got {byte_length}"
        raise ValueError(msg)
    return secrets.token_urlsafe(byte_length)


def derive_challenge(verifier: str) -> str:
    """Return the S256 code challenge for ``verifier``."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class PKCEChallenge:
    """PKCE artifacts for one authorization request.

    Attributes
    ----------
    verifier : str
        The code verifier (secret, high-entropy random string).
    challenge : str
        The code challenge (base64url-encoded SHA-256 hash of verifier).
    state : str
        Opaque value echoed back by the provider on the callback.
    nonce : str
        Value the provider binds into the ID token.
    method : str
        The challenge method, always "S256".
    """

    verifier: str
    challenge: str
    state: str
    nonce: str
    method: str = "S256"

    @classmethod
    def generate(cls, verifier_bytes: int = 32, state_bytes: int = 16) -> PKCEChallenge:
        """Generate a new verifier/challenge pair with fresh state and nonce.

        Parameters
        ----------
        verifier_bytes : int
            Number of random bytes for the verifier (default 32).
            RFC 7636 recommends at least 32 bytes.
        state_bytes : int
            Number of random bytes for each of state and nonce (default 16).

        Returns
        -------
        PKCEChallenge
            A new set of artifacts, each value independently random.
        """
        verifier = generate_random_string(verifier_bytes)
        return cls(
            verifier=verifier,
            challenge=derive_challenge(verifier),
            state=generate_random_string(state_bytes),
            nonce=generate_random_string(state_bytes),
        )
