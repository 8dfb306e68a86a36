"""
Integration tests for POST/GET /api/track through the FastAPI app.

LLM Prompt Example:
    "Show how to assert a JSON envelope, status code and custom header for a
    tracking endpoint using FastAPI's TestClient."
"""

from fastapi.testclient import TestClient

from main import create_app
from clicktrack_platform.storage.base import StorageError
from clicktrack_platform.storage.storage import Storage


def _payload(fp, name="device-a", **overrides):
    body = {
        "fingerprint": fp(name),
        "campaign_id": "instagram-bio",
        "target_url": "https://example.com/shop",
        "server_hash": "s" * 64,
        "client_hash": "c" * 32,
        "device": {"type": "mobile", "browser": "Safari", "os": "iOS", "user_agent": "UA"},
        "referrer": "https://instagram.com/",
        "ip": "203.0.113.7",
        "language": "en-US",
    }
    body.update(overrides)
    return body


def test_track_success(client, fp):
    response = client.post("/api/track", json=_payload(fp))

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"fingerprint": fp("device-a"), "campaign_id": "instagram-bio"},
    }
    assert response.headers["X-RateLimit-Remaining"] == "9"


def test_track_duplicate_counts_once_per_device(client, fp):
    client.post("/api/track", json=_payload(fp))
    client.post("/api/track", json=_payload(fp))

    data = client.get("/api/analytics", params={"campaign_id": "instagram-bio"}).json()["data"]
    assert data["unique_devices"] == 1
    assert data["total_clicks"] == 2


def test_track_missing_fields(client, fp):
    body = _payload(fp)
    del body["device"]
    response = client.post("/api/track", json=body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing required fields"}


def test_track_invalid_fingerprint(client, fp):
    response = client.post("/api/track", json=_payload(fp, fingerprint="abc"))
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid fingerprint format"


def test_track_invalid_campaign(client, fp):
    response = client.post("/api/track", json=_payload(fp, campaign_id="no spaces allowed"))
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid campaign ID"


def test_track_invalid_target(client, fp):
    response = client.post("/api/track", json=_payload(fp, target_url="http://192.168.0.10/"))
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid target URL"


def test_track_malformed_body(client):
    response = client.post("/api/track", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_track_null_optional_fields_accepted(client, fp):
    response = client.post(
        "/api/track",
        json=_payload(fp, server_hash=None, client_hash=None, referrer=None, ip=None, language=None),
    )
    assert response.status_code == 200


def test_track_rate_limited(client, fp):
    for remaining in range(9, -1, -1):
        r = client.post("/api/track", json=_payload(fp))
        assert r.headers["X-RateLimit-Remaining"] == str(remaining)

    response = client.post("/api/track", json=_payload(fp))
    assert response.status_code == 429
    assert response.json() == {"success": False, "error": "Rate limit exceeded. Please try again later."}


def test_track_storage_failure():
    class _Broken(Storage):
        def upsert_click(self, key, document, now):
            raise StorageError("db down")

    client = TestClient(create_app(storage=_Broken()))
    body = {
        "fingerprint": "a" * 64,
        "campaign_id": "c1",
        "target_url": "https://example.com",
        "device": {"type": "desktop"},
    }
    response = client.post("/api/track", json=body)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "warning": "Tracking data may not have been recorded",
    }


def test_track_unexpected_backend_error_uses_envelope():
    class _Buggy(Storage):
        def upsert_click(self, key, document, now):
            raise KeyError("device")

    client = TestClient(create_app(storage=_Buggy()))
    body = {
        "fingerprint": "b" * 64,
        "campaign_id": "c1",
        "target_url": "https://example.com",
        "device": {"type": "desktop"},
    }
    response = client.post("/api/track", json=body)

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "warning": "Tracking data may not have been recorded",
    }


def test_get_track_not_allowed(client):
    response = client.get("/api/track")
    assert response.status_code == 405
    assert response.json() == {"success": False, "error": "Method not allowed. Use POST to track clicks."}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
