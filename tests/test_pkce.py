try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import hashlib
import re

import pytest

from print_relay.services.pkce import (
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


def test_code_verifier_uses_unreserved_characters() -> None:
    verifier = generate_code_verifier()

    assert len(verifier) == 64
    assert _UNRESERVED.match(verifier)


@pytest.mark.parametrize("length", [42, 129])
def test_code_verifier_length_bounds(length: int) -> None:
    with pytest.raises(ValueError):
        generate_code_verifier(length)


def test_code_challenge_is_unpadded_s256() -> None:
    verifier = generate_code_verifier(43)
    expected = (
        base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
        .rstrip(b"=")
        .decode()
    )

    challenge = generate_code_challenge(verifier)

    assert challenge == expected
    assert len(challenge) == 43
    assert "=" not in challenge


def test_state_tokens_are_unique() -> None:
    assert len({generate_state() for _ in range(50)}) == 50
