"""
TrackingManager module for Clicktrack Platform.

Responsibilities:
    - Validate inbound tracking events (required fields, fingerprint shape,
      campaign id, target URL) before any side effect
    - Apply the per-fingerprint rate limit
    - Record admitted events in the click store
    - Convert every failure into a tagged result the HTTP layer maps to a status
    - Run fire-and-forget tracking for the server-side redirect with a bounded wait

Design notes:
    - Check order is fixed: missing fields, fingerprint, campaign id, target
      URL, rate limit, store. Rejected events never touch the limiter or store.
    - Storage failures are reported, never retried.
    - Dependencies (store, limiter, executor) are injected so tests can use
      fakes and a stepped clock.

LLM Prompt Example:
    "Explain how returning a tagged success/failure result instead of raising
    keeps HTTP status mapping in one place while the pipeline stays framework-free."
"""

import enum
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..fingerprint.client import generate_client_fingerprint
from ..fingerprint.hybrid import combine_fingerprints, is_valid_fingerprint
from ..fingerprint.server import ServerFingerprint
from ..limiter.rate_limiter import RateLimiter
from ..schemas import TrackingRequest
from ..storage.base import StorageError
from ..storage.click_store import ClickEvent, ClickStore
from ..utils.device_parser import parse_user_agent
from ..utils.validation import is_valid_campaign_id, is_valid_target_url

log = logging.getLogger("clicktrack.manager")

MISSING_FIELDS = "Missing required fields"
INVALID_FINGERPRINT = "Invalid fingerprint format"
INVALID_CAMPAIGN = "Invalid campaign ID"
INVALID_TARGET = "Invalid target URL"
RATE_LIMITED = "Rate limit exceeded. Please try again later."
INTERNAL_ERROR = "Internal server error"
NOT_RECORDED_WARNING = "Tracking data may not have been recorded"


class ErrorReason(enum.Enum):
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    STORAGE = "storage"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorReason.VALIDATION: 400,
    ErrorReason.RATE_LIMITED: 429,
    ErrorReason.STORAGE: 500,
}


@dataclass(frozen=True)
class TrackSuccess:
    data: Dict[str, Any]
    remaining: int
    key: str = ""


@dataclass(frozen=True)
class TrackFailure:
    reason: ErrorReason
    message: str
    warning: Optional[str] = None

    @property
    def http_status(self) -> int:
        return self.reason.http_status


TrackResult = Union[TrackSuccess, TrackFailure]


def redirect_tracking_request(
    server: ServerFingerprint,
    campaign_id: str,
    target_url: str,
    client_hash: Optional[str] = None,
    referrer: Optional[str] = None,
) -> TrackingRequest:
    """
    Build the tracking event for the server-side redirect flow.

    When the requester supplied no client hash, the fallback client signal
    is used (there is no client runtime to probe on this path).
    """
    client_hash = client_hash or generate_client_fingerprint(None)
    components = server.components
    return TrackingRequest(
        fingerprint=combine_fingerprints(server.hash, client_hash),
        campaign_id=campaign_id,
        target_url=target_url,
        server_hash=server.hash,
        client_hash=client_hash,
        device=parse_user_agent(components.user_agent),
        referrer=referrer,
        ip=None if components.ip == "unknown" else components.ip,
        language=components.language,
    )


class TrackingManager:
    """
    Coordinates validation, rate limiting and storage for tracking events.

    Args:
        store (ClickStore): Click store receiving admitted events.
        limiter (RateLimiter): Per-fingerprint limiter.
        rate_limit (Optional[int]): Override of the limiter's default limit.
        track_timeout (float): Bounded wait for fire-and-forget tracking.
        executor (Optional[ThreadPoolExecutor]): Pool for background tracking.
        max_workers (int): Pool size when no executor is given.
        max_queued (int): Background events allowed to wait behind busy
            workers; further events are dropped and logged.
    """

    def __init__(
        self,
        store: ClickStore,
        limiter: RateLimiter,
        rate_limit: Optional[int] = None,
        track_timeout: float = 2.0,
        executor: Optional[ThreadPoolExecutor] = None,
        max_workers: int = 4,
        max_queued: int = 4,
    ):
        self.store = store
        self.limiter = limiter
        self.rate_limit = rate_limit
        self.track_timeout = track_timeout
        self.max_workers = max_workers
        self._executor = executor or self._new_executor()
        self._slots = threading.BoundedSemaphore(max_workers + max(0, max_queued))
        self._stopped = False

    # ---------------------------------------------------------------------
    # Validation
    # ---------------------------------------------------------------------
    def _validate(self, request: TrackingRequest) -> Optional[TrackFailure]:
        if not request.fingerprint or not request.campaign_id or not request.target_url or request.device is None:
            return TrackFailure(ErrorReason.VALIDATION, MISSING_FIELDS)
        if not is_valid_fingerprint(request.fingerprint):
            return TrackFailure(ErrorReason.VALIDATION, INVALID_FINGERPRINT)
        if not is_valid_campaign_id(request.campaign_id):
            return TrackFailure(ErrorReason.VALIDATION, INVALID_CAMPAIGN)
        if not is_valid_target_url(request.target_url):
            return TrackFailure(ErrorReason.VALIDATION, INVALID_TARGET)
        return None

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def track(self, request: TrackingRequest) -> TrackResult:
        """
        Validate, rate-limit and record one tracking event.

        Returns:
            TrackResult: TrackSuccess with {fingerprint, campaign_id} and the
            remaining quota, or TrackFailure with the reason and message.
        """
        failure = self._validate(request)
        if failure is not None:
            log.info("Rejected tracking event: %s", failure.message)
            return failure

        fingerprint = request.fingerprint.lower()
        admitted = self.limiter.admit(fingerprint, self.rate_limit)
        if not admitted.allowed:
            log.warning("Rate limit exceeded for fingerprint %s...", fingerprint[:12])
            return TrackFailure(ErrorReason.RATE_LIMITED, RATE_LIMITED)

        event = ClickEvent(
            fingerprint=fingerprint,
            campaign_id=request.campaign_id,
            target_url=request.target_url,
            device=request.device,
            referrer=request.referrer or None,
            ip=request.ip or None,
            language=request.language or "unknown",
            server_hash=request.server_hash or "",
            client_hash=request.client_hash or "",
        )
        try:
            key = self.store.record(event)
        except StorageError as exc:
            log.error("Tracking storage failure: %s", exc)
            return TrackFailure(ErrorReason.STORAGE, INTERNAL_ERROR, warning=NOT_RECORDED_WARNING)
        except Exception:
            log.exception("Unexpected error recording click for campaign %s", request.campaign_id)
            return TrackFailure(ErrorReason.STORAGE, INTERNAL_ERROR, warning=NOT_RECORDED_WARNING)

        return TrackSuccess(
            data={"fingerprint": request.fingerprint, "campaign_id": request.campaign_id},
            remaining=admitted.remaining,
            key=key,
        )

    def track_in_background(self, request: TrackingRequest) -> Optional[TrackResult]:
        """
        Submit tracking to the pool and wait at most `track_timeout` seconds.

        Returns:
            Optional[TrackResult]: The result if it finished in time, else None.
            A late outcome is logged once the future completes. Events arriving
            while every worker and queue slot is taken are dropped (None).
        """
        if not self._slots.acquire(blocking=False):
            log.warning(
                "Tracking pool saturated; dropping click for campaign %s", request.campaign_id,
            )
            return None
        try:
            future = self._executor.submit(self.track, request)
        except RuntimeError as exc:
            self._slots.release()
            log.error("Tracking pool unavailable (%s); click for campaign %s not recorded",
                      exc, request.campaign_id)
            return None
        future.add_done_callback(self._release_slot)
        try:
            result = future.result(timeout=self.track_timeout)
        except FutureTimeout:
            log.warning(
                "Tracking for campaign %s exceeded %.1fs; continuing without waiting",
                request.campaign_id, self.track_timeout,
            )
            future.add_done_callback(self._log_late_outcome)
            return None
        except Exception:
            # the redirect must proceed whatever tracking did
            log.exception("Background tracking raised for campaign %s", request.campaign_id)
            return None
        if isinstance(result, TrackFailure):
            log.warning("Background tracking failed (%s): %s", result.reason.value, result.message)
        return result

    def start(self) -> None:
        """Replace a pool that was shut down, e.g. when the app lifespan runs again."""
        if self._stopped:
            self._executor = self._new_executor()
            self._stopped = False

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
        self._stopped = True

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="clicktrack")

    def _release_slot(self, _future: Future) -> None:
        self._slots.release()

    @staticmethod
    def _log_late_outcome(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            log.error("Late tracking raised: %s", exc)
            return
        result = future.result()
        if isinstance(result, TrackFailure):
            log.warning("Late tracking failed (%s): %s", result.reason.value, result.message)
        else:
            log.info("Late tracking recorded %s", result.key)
