"""
Global pytest fixtures for the Clicktrack Platform test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide isolated in-memory Storage, ClickStore, RateLimiter and Analytics fixtures
    - Provide steppable clocks so time-window behaviour is tested without sleeping

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state
    (store and rate limiter), eliminating cross-test flakiness.

LLM Prompt Example:
    "Show how to structure pytest fixtures to isolate service state and
    control time in tests for rate limiting and retention."
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from clicktrack_platform.analytics.analytics import Analytics
from clicktrack_platform.fingerprint.hybrid import combine_fingerprints
from clicktrack_platform.limiter.rate_limiter import RateLimiter
from clicktrack_platform.manager.tracking_manager import TrackingManager
from clicktrack_platform.schemas import DeviceInfo, TrackingRequest
from clicktrack_platform.storage.click_store import ClickEvent, ClickStore
from clicktrack_platform.storage.storage import Storage

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)


class SteppedClock:
    """Datetime clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


class SteppedMonotonic:
    """Monotonic-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fingerprint_for(name: str) -> str:
    """Deterministic, valid 64-hex fingerprint for a named test device."""
    return combine_fingerprints(f"server-{name}", f"client-{name}")


def make_event(name: str = "device-a", campaign_id: str = "instagram-bio",
               target_url: str = "https://example.com/shop", **overrides) -> ClickEvent:
    fields = dict(
        fingerprint=fingerprint_for(name),
        campaign_id=campaign_id,
        target_url=target_url,
        device=DeviceInfo(type="mobile", browser="Safari", os="iOS", user_agent=IPHONE_UA),
        referrer="https://instagram.com/",
        ip="203.0.113.7",
        language="en-US",
        server_hash="s" * 64,
        client_hash="c" * 32,
    )
    fields.update(overrides)
    return ClickEvent(**fields)


def make_request(name: str = "device-a", campaign_id: str = "instagram-bio",
                 target_url: str = "https://example.com/shop", **overrides) -> TrackingRequest:
    event = make_event(name, campaign_id, target_url)
    fields = dict(
        fingerprint=event.fingerprint,
        campaign_id=event.campaign_id,
        target_url=event.target_url,
        server_hash=event.server_hash,
        client_hash=event.client_hash,
        device=event.device,
        referrer=event.referrer,
        ip=event.ip,
        language=event.language,
    )
    fields.update(overrides)
    return TrackingRequest(**fields)


@pytest.fixture
def clock() -> SteppedClock:
    return SteppedClock()


@pytest.fixture
def tick() -> SteppedMonotonic:
    return SteppedMonotonic()


@pytest.fixture
def storage() -> Storage:
    """
    Provide a fresh in-memory Storage backend.

    LLM Prompt Example:
        "Explain how to use in-memory test doubles for fast, deterministic tests,
        and later swap with database-backed implementations."
    """
    return Storage()


@pytest.fixture
def store(storage: Storage, clock: SteppedClock) -> ClickStore:
    return ClickStore(storage, now=clock)


@pytest.fixture
def limiter(tick: SteppedMonotonic) -> RateLimiter:
    return RateLimiter(limit=10, window_seconds=60, max_identifiers=500, clock=tick)


@pytest.fixture
def analytics(store: ClickStore) -> Analytics:
    return Analytics(store)


@pytest.fixture
def manager(store: ClickStore, limiter: RateLimiter):
    """
    Provide a TrackingManager wired to the store and limiter fixtures.

    LLM Prompt Example:
        "Show how to compose a manager/service layer with injected dependencies
        to keep tests focused and fast."
    """
    mgr = TrackingManager(store=store, limiter=limiter, track_timeout=2.0)
    yield mgr
    mgr.shutdown()


@pytest.fixture
def client() -> TestClient:
    """
    Provide a fresh TestClient with a new app instance (memory backend).

    Notes:
        - Uses the app factory to ensure clean, isolated state per test invocation.
    """
    app = create_app(storage=Storage())
    return TestClient(app)


@pytest.fixture
def fp():
    """Factory: device name -> valid fingerprint."""
    return fingerprint_for


@pytest.fixture
def event_factory():
    """Factory building ClickEvents for a named device."""
    return make_event


@pytest.fixture
def request_factory():
    """Factory building TrackingRequests for a named device."""
    return make_request
