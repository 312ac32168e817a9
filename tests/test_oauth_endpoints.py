try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest
from relay_fakes import RelayHarness, make_settings

pytestmark = pytest.mark.anyio("asyncio")


def _client(harness: RelayHarness) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=harness.app),
        base_url="https://testserver",
    )


async def test_authorize_redirects_to_canva() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        response = await client.get("/auth/canva/authorize", params={"userKey": "u1"})

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://canva.example/auth")
    assert harness.oauth.states


async def test_authorize_returns_json_for_api_clients() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        response = await client.get(
            "/auth/canva/authorize",
            params={"userKey": "u1"},
            headers={"accept": "application/json"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["authUrl"].startswith("https://canva.example/auth")


async def test_authorize_requires_user_key_and_configuration() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        missing = await client.get("/auth/canva/authorize")
        harness.oauth.configured = False
        unconfigured = await client.get("/auth/canva/authorize", params={"userKey": "u1"})

    assert missing.status_code == 400
    assert missing.json() == {"ok": False, "message": "Missing userKey"}
    assert unconfigured.status_code == 500


async def test_callback_shows_confirmation_and_rejects_replay() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        await client.get("/auth/canva/authorize", params={"userKey": "u1"})
        state = harness.oauth.states[-1]

        callback = await client.get(
            "/auth/canva/callback", params={"code": "code-1", "state": state}
        )
        replay = await client.get(
            "/auth/canva/callback", params={"code": "code-1", "state": state}
        )

    assert callback.status_code == 200
    assert callback.headers["content-type"].startswith("text/html")
    assert "Canva connected" in callback.text
    assert replay.status_code == 400
    assert replay.json() == {"ok": False, "message": "invalid_or_expired_state"}
    assert harness.services.token_store.get("u1") is not None


async def test_callback_error_statuses() -> None:
    harness = RelayHarness()
    harness.oauth.fail_exchange = True
    async with _client(harness) as client:
        missing = await client.get("/auth/canva/callback", params={"state": "s"})
        await client.get("/auth/canva/authorize", params={"userKey": "u1"})
        failed = await client.get(
            "/auth/canva/callback",
            params={"code": "c", "state": harness.oauth.states[-1]},
        )

    assert missing.status_code == 400
    assert missing.json()["message"] == "missing_params"
    assert failed.status_code == 500
    assert failed.json() == {"ok": False, "message": "Token exchange failed"}
    assert harness.services.token_store.get("u1") is None


async def test_callback_redirects_to_frontend_when_configured() -> None:
    settings = make_settings()
    settings.frontend_base_url = "https://app.example.com/connected"
    harness = RelayHarness(settings)
    async with _client(harness) as client:
        await client.get("/auth/canva/authorize", params={"userKey": "u1"})
        response = await client.get(
            "/auth/canva/callback",
            params={"code": "c", "state": harness.oauth.states[-1]},
        )

    assert response.status_code == 307
    assert response.headers["location"] == "https://app.example.com/connected"


async def test_design_request_walks_through_authorization() -> None:
    harness = RelayHarness()
    design = {"widthMm": 210, "heightMm": 297, "userKey": "u1", "title": "Flyer"}
    async with _client(harness) as client:
        first = await client.post("/canva/designs", json=design)
        state = harness.oauth.states[-1]
        pending = await client.get("/handoff/status", params={"userKey": "u1"})
        await client.get("/auth/canva/callback", params={"code": "c", "state": state})
        second = await client.post("/canva/designs", json=design)
        requested = await client.get("/handoff/status", params={"userKey": "u1"})

    assert first.status_code == 200
    assert first.json()["ok"] is False
    assert first.json()["needAuth"] is True
    assert first.json()["authUrl"].startswith("https://canva.example/auth")
    assert pending.json() == {"state": "AUTH_PENDING"}
    assert second.json() == {"ok": True, "editUrl": harness.designs.edit_url}
    assert harness.designs.calls[-1]["width_px"] == 794
    assert harness.designs.calls[-1]["access_token"] == "access-1"
    assert requested.json() == {"state": "DESIGN_REQUESTED"}


async def test_design_request_failures() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        no_user = await client.post("/canva/designs", json={"widthMm": 10, "heightMm": 10})
        bad_size = await client.post(
            "/canva/designs", json={"widthMm": -1, "heightMm": 10, "userKey": "u1"}
        )
        await client.post("/canva/designs", json={"widthMm": 10, "heightMm": 10, "userKey": "u1"})
        await client.get(
            "/auth/canva/callback",
            params={"code": "c", "state": harness.oauth.states[-1]},
        )
        harness.designs.edit_url = None
        no_edit_url = await client.post(
            "/canva/designs", json={"widthMm": 10, "heightMm": 10, "userKey": "u1"}
        )

    assert no_user.status_code == 400
    assert bad_size.status_code == 400
    assert no_edit_url.status_code == 502
    assert no_edit_url.json() == {
        "ok": False,
        "message": "Design creation failed",
        "code": "no_edit_url",
    }


async def test_revoked_token_during_design_request_needs_authorization() -> None:
    harness = RelayHarness()
    design = {"widthMm": 10, "heightMm": 10, "userKey": "u1"}
    async with _client(harness) as client:
        await client.post("/canva/designs", json=design)
        await client.get(
            "/auth/canva/callback",
            params={"code": "c", "state": harness.oauth.states[-1]},
        )
        harness.designs.revoked = True
        response = await client.post("/canva/designs", json=design)

    assert response.status_code == 200
    assert response.json()["needAuth"] is True
    assert harness.services.token_store.get("u1") is None
