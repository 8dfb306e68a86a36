"""
Unit tests for the in-memory click storage backend.

LLM Prompt Example:
    "Test create-or-increment semantics of a storage backend, including which
    fields are frozen after the first write."
"""

from datetime import datetime, timedelta, timezone

from clicktrack_platform.storage.storage import Storage

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _doc(campaign_id="c1", target_url="https://example.com/a", at=T0, device_type="mobile"):
    return {
        "fingerprint": "f" * 64,
        "campaign_id": campaign_id,
        "target_url": target_url,
        "device": {"type": device_type, "browser": "Safari", "os": "iOS"},
        "first_click": at,
        "last_click": at,
        "created_at": at,
        "updated_at": at,
        "click_count": 1,
        "referrer": "https://instagram.com/",
        "ip": "203.0.113.7",
        "language": "en-US",
        "server_hash": "s",
        "client_hash": "c",
    }


def test_first_upsert_creates_record(storage):
    assert storage.upsert_click("k1", _doc(), T0) is True
    record = storage.get_click("k1")
    assert record["key"] == "k1"
    assert record["click_count"] == 1
    assert record["first_click"] == record["last_click"] == T0


def test_second_upsert_increments_and_touches_only_mutable_fields(storage):
    storage.upsert_click("k1", _doc(), T0)
    later = T0 + timedelta(minutes=5)
    changed = _doc(target_url="https://example.com/new", at=later, device_type="desktop")
    changed["referrer"] = "https://other.example/"

    assert storage.upsert_click("k1", changed, later) is False

    record = storage.get_click("k1")
    assert record["click_count"] == 2
    assert record["first_click"] == T0
    assert record["created_at"] == T0
    assert record["last_click"] == later
    assert record["updated_at"] == later
    assert record["target_url"] == "https://example.com/new"
    assert record["device"]["type"] == "mobile"
    assert record["referrer"] == "https://instagram.com/"


def test_get_missing_returns_none(storage):
    assert storage.get_click("missing") is None


def test_returned_records_are_copies(storage):
    storage.upsert_click("k1", _doc(), T0)
    storage.get_click("k1")["click_count"] = 99
    assert storage.get_click("k1")["click_count"] == 1


def test_scan_all_and_by_campaign(storage):
    storage.upsert_click("k1", _doc("c1"), T0)
    storage.upsert_click("k2", _doc("c2"), T0)
    storage.upsert_click("k3", _doc("c1"), T0)

    assert {r["key"] for r in storage.scan_clicks()} == {"k1", "k2", "k3"}
    assert {r["key"] for r in storage.scan_clicks("c1")} == {"k1", "k3"}
    assert storage.scan_clicks("nope") == []


def test_delete_before_cutoff(storage):
    storage.upsert_click("old", _doc(at=T0), T0)
    storage.upsert_click("new", _doc(at=T0 + timedelta(days=10)), T0 + timedelta(days=10))

    removed = storage.delete_clicks_before(T0 + timedelta(days=1))

    assert removed == 1
    assert storage.get_click("old") is None
    assert storage.get_click("new") is not None


def test_delete_uses_strictly_older(storage):
    storage.upsert_click("edge", _doc(at=T0), T0)
    assert storage.delete_clicks_before(T0) == 0
    assert storage.get_click("edge") is not None
