try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import logging

import httpx
import pytest
from relay_fakes import PDF_MAGIC, RelayHarness, make_settings

from print_relay.clients import ArtifactDownloader

pytestmark = pytest.mark.anyio("asyncio")


def _client(harness: RelayHarness) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=harness.app),
        base_url="https://testserver",
    )


async def test_health() -> None:
    async with _client(RelayHarness()) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


async def test_deposit_poll_retrieve_clear_round_trip() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        deposit = await client.post(
            "/canva/export",
            json={
                "files": ["https://export.canva.test/abc.pdf"],
                "sessionId": "abc",
                "exportTitle": "Flyer",
            },
        )
        ready = await client.get("/pressero/ready", params={"sessionId": "abc"})
        pdf = await client.get("/files/abc.pdf")
        cleared = await client.post("/pressero/clear", json={"sessionId": "abc"})
        after = await client.get("/pressero/ready", params={"sessionId": "abc"})
        missing = await client.get("/files/abc.pdf")

    assert deposit.status_code == 200
    assert deposit.json() == {"ok": True, "url": "https://relay.example.com/files/abc.pdf"}
    assert ready.json() == {"ready": True, "url": "https://relay.example.com/files/abc.pdf"}
    assert ready.headers["cache-control"] == "no-store"
    assert pdf.status_code == 200
    assert pdf.content == PDF_MAGIC
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.headers["cache-control"] == "no-store"
    assert cleared.json() == {"ok": True}
    assert after.json() == {"ready": False}
    assert missing.status_code == 404
    assert missing.json() == {"ok": False, "message": "Not found"}


async def test_deposit_rejects_missing_inputs() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        no_files = await client.post("/canva/export", json={"files": [], "sessionId": "abc"})
        no_session = await client.post("/canva/export", json={"files": ["https://x/1.pdf"]})

    assert no_files.status_code == 400
    assert no_files.json() == {"ok": False, "message": "No files"}
    assert no_session.status_code == 400
    assert no_session.json() == {"ok": False, "message": "Missing sessionId"}
    assert harness.downloader.urls == []


async def test_download_failure_is_reported_generically() -> None:
    harness = RelayHarness()
    harness.downloader.fail = True
    async with _client(harness) as client:
        response = await client.post(
            "/canva/export", json={"files": ["https://x/1.pdf"], "sessionId": "abc"}
        )
        ready = await client.get("/pressero/ready", params={"sessionId": "abc"})

    assert response.status_code == 502
    assert response.json() == {"ok": False, "message": "Export failed"}
    assert ready.json() == {"ready": False}


async def test_base64_upload() -> None:
    harness = RelayHarness()
    encoded = base64.b64encode(PDF_MAGIC).decode()
    async with _client(harness) as client:
        stored = await client.post(
            "/pressero/upload", json={"sessionId": "s-1", "fileBase64": encoded}
        )
        invalid = await client.post(
            "/pressero/upload", json={"sessionId": "s-2", "fileBase64": "%%%"}
        )
        missing = await client.post("/pressero/upload", json={"sessionId": "s-3"})
        wrapped = await client.post(
            "/pressero/upload",
            json={"sessionId": "s-4", "fileBase64": base64.encodebytes(PDF_MAGIC * 40).decode()},
        )
        pdf = await client.get("/files/s-1.pdf")
        wrapped_pdf = await client.get("/files/s-4.pdf")

    assert stored.json() == {"ok": True, "url": "https://relay.example.com/files/s-1.pdf"}
    assert invalid.status_code == 400
    assert missing.json() == {"ok": False, "message": "Missing sessionId or fileBase64"}
    assert pdf.content == PDF_MAGIC
    assert wrapped.status_code == 200
    assert wrapped_pdf.content == PDF_MAGIC * 40


async def test_poll_without_session_is_not_ready() -> None:
    async with _client(RelayHarness()) as client:
        response = await client.get("/pressero/ready")

    assert response.status_code == 200
    assert response.json() == {"ready": False}


async def test_clear_is_idempotent_but_needs_a_key() -> None:
    async with _client(RelayHarness()) as client:
        first = await client.post("/pressero/clear", json={"sessionId": "nope"})
        second = await client.post("/pressero/clear", json={"sessionId": "nope"})
        keyless = await client.post("/pressero/clear")

    assert first.json() == second.json() == {"ok": True}
    assert keyless.status_code == 400


async def test_single_read_mode_purges_on_first_fetch() -> None:
    harness = RelayHarness(make_settings(RELAY_SINGLE_READ=True))
    harness.services.handoff.deposit_bytes("abc", PDF_MAGIC)
    async with _client(harness) as client:
        first = await client.get("/files/abc.pdf")
        second = await client.get("/files/abc.pdf")

    assert first.content == PDF_MAGIC
    assert second.status_code == 404


async def test_session_keys_with_reserved_characters_round_trip() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        deposit = await client.post(
            "/canva/export", json={"files": ["https://x/1.pdf"], "sessionId": "a b"}
        )
        pdf = await client.get(deposit.json()["url"].replace("https://relay.example.com", ""))

    assert deposit.json()["url"].endswith("/files/a%20b.pdf")
    assert pdf.content == PDF_MAGIC


async def test_session_keys_with_slashes_are_retrievable_at_their_url() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        deposit = await client.post(
            "/canva/export", json={"files": ["https://x/1.pdf"], "sessionId": "shop/42"}
        )
        url = deposit.json()["url"]
        ready = await client.get("/pressero/ready", params={"sessionId": "shop/42"})
        pdf = await client.get(url.replace("https://relay.example.com", ""))

    assert url.endswith("/files/shop%2F42.pdf")
    assert ready.json() == {"ready": True, "url": url}
    assert pdf.status_code == 200
    assert pdf.content == PDF_MAGIC


async def test_failed_download_does_not_log_signed_url(caplog) -> None:
    signed = "https://export.canva.test/f.pdf?X-Amz-Signature=SECRETSIG"
    downloader = ArtifactDownloader(
        transport=httpx.MockTransport(lambda request: httpx.Response(404))
    )
    harness = RelayHarness(downloader=downloader)

    with caplog.at_level(logging.DEBUG):
        async with _client(harness) as client:
            response = await client.post(
                "/canva/export", json={"files": [signed], "sessionId": "s-1"}
            )

    assert response.status_code == 502
    assert response.json() == {"ok": False, "message": "Export failed"}
    assert "SECRETSIG" not in caplog.text
    assert all(record.exc_info is None for record in caplog.records)


async def test_malformed_body_gets_structured_error() -> None:
    async with _client(RelayHarness()) as client:
        response = await client.post("/canva/export", json={"files": "not-a-list"})

    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert "files" in body["message"]


async def test_oversized_body_is_rejected() -> None:
    settings = make_settings()
    settings.max_body_bytes = 16
    async with _client(RelayHarness(settings)) as client:
        response = await client.post(
            "/pressero/upload", json={"sessionId": "abc", "fileBase64": "A" * 64}
        )

    assert response.status_code == 413


async def test_status_endpoint_tracks_session() -> None:
    harness = RelayHarness()
    async with _client(harness) as client:
        before = await client.get("/handoff/status", params={"sessionId": "abc"})
        await client.post("/canva/export", json={"files": ["https://x/1.pdf"], "sessionId": "abc"})
        ready = await client.get("/handoff/status", params={"sessionId": "abc"})
        await client.get("/files/abc.pdf")
        await client.post("/pressero/clear", json={"sessionId": "abc"})
        consumed = await client.get("/handoff/status", params={"sessionId": "abc"})

    assert before.json() == {"state": "NO_TOKEN"}
    assert ready.json() == {"state": "ARTIFACT_READY"}
    assert consumed.json() == {"state": "CONSUMED"}
