"""
Main API module for Clicktrack Platform.

Responsibilities:
    - Accept tracking events and answer with the {success, data?, error?, warning?} envelope
    - Serve campaign analytics (all campaigns, per-campaign detail and breakdowns)
    - Provide the server-signal handshake for the client runtime (/track/{campaign_id})
    - Provide a server-side redirect that tracks fire-and-forget (/r/{campaign_id})

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory Storage by default; PostgreSQL selected via CLICKTRACK_STORAGE_BACKEND.
    - TrackingManager owns validation, rate limiting and storage; routes only map
      its tagged results to HTTP statuses.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    injected dependencies, and a clean separation between API and business logic."
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from clicktrack_platform.analytics.analytics import Analytics
from clicktrack_platform.analytics.base import AnalyticsError
from clicktrack_platform.config import settings
from clicktrack_platform.fingerprint.server import generate_server_fingerprint, get_referrer
from clicktrack_platform.limiter.rate_limiter import RateLimiter
from clicktrack_platform.manager.tracking_manager import (
    TrackFailure,
    TrackingManager,
    redirect_tracking_request,
)
from clicktrack_platform.schemas import ApiResponse, TrackingRequest
from clicktrack_platform.storage.base import BaseStorage
from clicktrack_platform.storage.click_store import ClickStore
from clicktrack_platform.storage.storage_factory import get_storage
from clicktrack_platform.utils.device_parser import parse_user_agent
from clicktrack_platform.utils.validation import decode_url, is_valid_target_url, sanitize_campaign_id

log = logging.getLogger("clicktrack")


def _envelope(status_code: int, response: ApiResponse, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(response.to_body(), status_code=status_code, headers=headers)


def _error(status_code: int, message: str, warning: Optional[str] = None) -> JSONResponse:
    return _envelope(status_code, ApiResponse(success=False, error=message, warning=warning))


def create_app(
    storage: Optional[BaseStorage] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Backend override; defaults to get_storage().
        rate_limiter (Optional[RateLimiter]): Limiter override; defaults to one built from settings.

    Returns:
        FastAPI: A fully configured application instance with its own store,
                 limiter and analytics.

    LLM Prompt Example:
        "Show how an application factory enables test isolation and easy
        dependency swapping (e.g., in-memory vs DB storage) without code changes."
    """
    # basic console logging (optional)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=settings.LOG_LEVEL,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    backend = storage if storage is not None else get_storage()  # memory or postgres based on env
    store = ClickStore(backend)
    limiter = rate_limiter or RateLimiter(
        limit=settings.RATE_LIMIT,
        window_seconds=settings.RATE_WINDOW_SECONDS,
        max_identifiers=settings.RATE_MAX_IDENTIFIERS,
    )
    manager = TrackingManager(
        store=store,
        limiter=limiter,
        track_timeout=settings.TRACK_TIMEOUT_SECONDS,
        max_workers=settings.TRACK_WORKERS,
        max_queued=settings.TRACK_MAX_QUEUED,
    )
    analytics = Analytics(store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        log.info("Clicktrack storage backend: %s", type(backend).__name__)
        manager.start()
        yield
        manager.shutdown()

    app = FastAPI(
        title="Clicktrack Platform",
        description="Device-level click attribution with hybrid fingerprints and campaign analytics",
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.manager = manager
    app.state.analytics = analytics

    # Health check
    @app.get("/health")
    def health():
        return {"status": "ok"}

    # ----------------------------------------------------------------
    # Tracking API
    # ----------------------------------------------------------------
    @app.post("/api/track")
    async def track(request: Request) -> JSONResponse:
        """
        Record one tracking event.

        Returns:
            200 {success, data: {fingerprint, campaign_id}} + X-RateLimit-Remaining,
            400 on validation failure, 429 when rate limited,
            500 with a warning when storage failed.
        """
        try:
            payload = TrackingRequest.model_validate(await request.json())
        except ValueError as exc:
            log.info("Rejected malformed tracking body: %s", exc)
            return _error(400, "Invalid request body")

        result = await run_in_threadpool(manager.track, payload)
        if isinstance(result, TrackFailure):
            return _error(result.http_status, result.message, result.warning)

        return _envelope(
            200,
            ApiResponse(success=True, data=result.data),
            headers={"X-RateLimit-Remaining": str(result.remaining)},
        )

    @app.get("/api/track")
    def track_get() -> JSONResponse:
        return _error(405, "Method not allowed. Use POST to track clicks.")

    # ----------------------------------------------------------------
    # Analytics API
    # ----------------------------------------------------------------
    @app.get("/api/analytics")
    def analytics_view(
        campaign_id: Optional[str] = Query(None, description="Campaign to inspect; omit for all campaigns."),
        view: Optional[str] = Query(None, alias="type", description="devices | browsers | os (default: detail)"),
    ) -> JSONResponse:
        """
        Campaign analytics.

        Without campaign_id: {campaigns, total}. With campaign_id: a device,
        browser or OS breakdown when `type` asks for one, else the full detail.
        """
        try:
            if not campaign_id:
                data = {"campaigns": analytics.list_campaigns(), "total": analytics.totals()}
            elif view == "devices":
                data = analytics.device_type_breakdown(campaign_id)
            elif view == "browsers":
                data = analytics.browser_breakdown(campaign_id)
            elif view == "os":
                data = analytics.os_breakdown(campaign_id)
            else:
                data = analytics.campaign_detail(campaign_id)
        except AnalyticsError as exc:
            log.error("Analytics API error: %s", exc)
            return _error(500, "Failed to fetch analytics data")
        return _envelope(200, ApiResponse(success=True, data=data))

    # ----------------------------------------------------------------
    # Redirect entry points
    # ----------------------------------------------------------------
    def _resolve_target(campaign_id: str, url: Optional[str]):
        """Return (campaign_id, target_url) or an error response."""
        sanitized = sanitize_campaign_id(campaign_id)
        if not sanitized:
            return None, _error(404, "Campaign not found")
        if not url:
            return None, _error(400, "Missing target URL. Provide it with ?url=")
        target_url = decode_url(url)
        if not is_valid_target_url(target_url):
            return None, _error(400, "Invalid target URL")
        return (sanitized, target_url), None

    @app.get("/track/{campaign_id}")
    def track_handshake(
        campaign_id: str,
        request: Request,
        url: Optional[str] = Query(None, description="Percent-encoded destination URL."),
    ) -> JSONResponse:
        """
        Server-signal handshake for the client runtime.

        Returns the server hash and components so the client can combine its
        own signal and POST the event to /api/track before redirecting.
        """
        resolved, error = _resolve_target(campaign_id, url)
        if error is not None:
            return error
        sanitized, target_url = resolved

        server = generate_server_fingerprint(request.headers)
        data = {
            "campaign_id": sanitized,
            "target_url": target_url,
            "server_hash": server.hash,
            "components": server.components.model_dump(),
            "referrer": get_referrer(request.headers),
            "device": parse_user_agent(server.components.user_agent).model_dump(),
        }
        return _envelope(200, ApiResponse(success=True, data=data))

    @app.get("/r/{campaign_id}")
    def redirect(
        campaign_id: str,
        request: Request,
        url: Optional[str] = Query(None, description="Percent-encoded destination URL."),
        client_hash: Optional[str] = Query(None, description="Client signal, if the caller computed one."),
    ):
        """
        Server-side redirect: track fire-and-forget, then 302 to the target.

        Tracking failures and timeouts are logged; the redirect always proceeds.
        """
        resolved, error = _resolve_target(campaign_id, url)
        if error is not None:
            return error
        sanitized, target_url = resolved

        server = generate_server_fingerprint(request.headers)
        event = redirect_tracking_request(
            server,
            campaign_id=sanitized,
            target_url=target_url,
            client_hash=client_hash,
            referrer=get_referrer(request.headers),
        )
        manager.track_in_background(event)
        return RedirectResponse(url=target_url, status_code=302)

    return app


# Backward compatibility for uvicorn and legacy imports:
# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
