"""
Base storage interface for Clicktrack Platform.

Purpose:
    Define a small, stable contract for click-record backends (in-memory,
    PostgreSQL) so the click store and analytics never depend on where the
    documents live.

Record layout (one document per dedup key):
    fingerprint, campaign_id, target_url, device (dict), first_click,
    last_click, created_at, updated_at (timezone-aware datetimes),
    click_count, referrer, ip, language, server_hash, client_hash

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.

LLM Prompt Example:
    "Show how a create-if-absent-else-increment primitive keeps concurrent
    click counting correct without a read-modify-write in the service layer."
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional


class StorageError(Exception):
    """Raised when a backend cannot complete a read or write."""


class BaseStorage(ABC):
    """Abstract base class for click-record backends."""

    @abstractmethod  # pragma: no cover
    def get_click(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve one click record by dedup key.

        Returns:
            Optional[Dict[str, Any]]: Record (with "key") or None.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def upsert_click(self, key: str, document: Dict[str, Any], now: datetime) -> bool:
        """
        Insert `document` under `key`, or atomically bump the existing record.

        On conflict only click_count (+1), last_click, updated_at and
        target_url change; everything else stays as first recorded.

        Returns:
            bool: True if a new record was created, False if one was updated.

        LLM Prompt Example:
            "Compare INSERT ... ON CONFLICT DO UPDATE with a Firestore
            transaction for create-or-increment semantics."
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def scan_clicks(self, campaign_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Return every record, or only those of one campaign.

        Each returned dict carries its dedup key under "key".
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_clicks_before(self, cutoff: datetime, batch_size: int = 500) -> int:
        """
        Delete records whose last_click is older than `cutoff`, in batches.

        Returns:
            int: Number of records removed.
        """
        raise NotImplementedError
