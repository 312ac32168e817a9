try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta

from relay_fakes import FakeClock

from print_relay.models.oauth import StoredOAuthToken
from print_relay.services.oauth_stores import AuthorizationStateStore, TokenStore


def test_authorization_state_is_consumed_once() -> None:
    clock = FakeClock()
    store = AuthorizationStateStore(ttl_seconds=900, clock=clock)
    store.save("state-1", store.new_state("u1", "verifier"))

    first = store.consume("state-1")
    assert first is not None
    assert first.user_key == "u1"
    assert first.code_verifier == "verifier"
    assert store.consume("state-1") is None


def test_stale_authorization_state_is_rejected() -> None:
    clock = FakeClock()
    store = AuthorizationStateStore(ttl_seconds=600, clock=clock)
    store.save("state-1", store.new_state("u1", "verifier"))

    clock.advance(601)

    assert store.has_pending_for("u1") is False
    assert store.consume("state-1") is None
    assert len(store) == 0


def test_prune_expired_removes_abandoned_flows() -> None:
    clock = FakeClock()
    store = AuthorizationStateStore(ttl_seconds=600, clock=clock)
    store.save("old", store.new_state("u1", "v1"))
    clock.advance(500)
    store.save("fresh", store.new_state("u2", "v2"))
    clock.advance(200)

    assert store.prune_expired() == 1
    assert store.has_pending_for("u2") is True
    assert store.has_pending_for("u1") is False


def test_token_store_keeps_one_record_per_user() -> None:
    clock = FakeClock()
    store = TokenStore()
    expires = clock() + timedelta(hours=1)
    store.put(StoredOAuthToken(user_key="u1", access_token_encrypted="a", expires_at=expires))
    store.put(StoredOAuthToken(user_key="u1", access_token_encrypted="b", expires_at=expires))

    record = store.get("u1")
    assert record is not None
    assert record.access_token_encrypted == "b"
    assert store.delete("u1") is True
    assert store.delete("u1") is False
    assert store.get("u1") is None
