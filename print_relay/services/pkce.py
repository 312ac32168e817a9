"""PKCE and state token helpers."""

from __future__ import annotations

import base64
import hashlib
import secrets


def generate_code_verifier(length: int = 64) -> str:
    if length < 43 or length > 128:
        raise ValueError("PKCE code verifier length must be between 43 and 128")
    verifier = secrets.token_urlsafe(length)
    return verifier[:length]


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge: unpadded base64url of the verifier's SHA-256 digest."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


__all__ = ["generate_code_challenge", "generate_code_verifier", "generate_state"]
