"""
Click store: idempotent per-device click counters.

Responsibilities:
    - Turn an accepted tracking event into a create-or-increment on the
      record addressed by its dedup key
    - Fetch single records and run the retention sweep

Notes:
    - First sight of a key stores the full snapshot (device, referrer, ip,
      language, raw signals) with click_count=1. Later events only bump
      click_count, last_click/updated_at and overwrite target_url.
    - The increment itself is delegated to the backend's atomic upsert;
      this class never does read-modify-write.
    - Backend failures surface as StorageError and are never retried here.

LLM Prompt Example:
    "Explain why click_count must be incremented in the store rather than
    read, bumped and written back by the service."
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ..schemas import DeviceInfo
from .base import BaseStorage, StorageError
from .keys import build_key

log = logging.getLogger("clicktrack.storage")

DEFAULT_RETENTION_DAYS = 90


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ClickEvent:
    """A validated, admitted tracking event."""
    fingerprint: str
    campaign_id: str
    target_url: str
    device: DeviceInfo
    referrer: Optional[str] = None
    ip: Optional[str] = None
    language: Optional[str] = None
    server_hash: str = ""
    client_hash: str = ""


class ClickStore:
    """
    Record clicks against a BaseStorage backend.

    Args:
        storage (BaseStorage): Backend holding the documents.
        now (Callable[[], datetime]): Clock, UTC-aware by default.
    """

    def __init__(self, storage: BaseStorage, now: Callable[[], datetime] = utcnow) -> None:
        self.storage = storage
        self._now = now

    def record(self, event: ClickEvent) -> str:
        """
        Create or bump the record for `event`.

        Returns:
            str: The dedup key that was written.

        Raises:
            StorageError: If the backend rejects the write.
        """
        key = build_key(event.fingerprint, event.campaign_id, event.target_url)
        now = self._now()
        document: Dict[str, Any] = {
            "fingerprint": event.fingerprint,
            "campaign_id": event.campaign_id,
            "target_url": event.target_url,
            "device": event.device.model_dump(),
            "first_click": now,
            "last_click": now,
            "created_at": now,
            "updated_at": now,
            "click_count": 1,
            "referrer": event.referrer,
            "ip": event.ip,
            "language": event.language,
            "server_hash": event.server_hash,
            "client_hash": event.client_hash,
        }
        try:
            created = self.storage.upsert_click(key, document, now)
        except StorageError:
            log.exception("Failed to record click for campaign %s", event.campaign_id)
            raise
        log.debug("%s click record %s", "Created" if created else "Updated", key)
        return key

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return one record by dedup key, or None."""
        return self.storage.get_click(key)

    def cleanup(self, days: int = DEFAULT_RETENTION_DAYS) -> int:
        """
        Delete records whose last_click is older than `days` days.

        Returns:
            int: Number of records removed.
        """
        if days < 0:
            raise ValueError("days must be >= 0")
        cutoff = self._now() - timedelta(days=days)
        removed = self.storage.delete_clicks_before(cutoff)
        log.info("Retention sweep removed %d click records older than %s", removed, cutoff.isoformat())
        return removed
