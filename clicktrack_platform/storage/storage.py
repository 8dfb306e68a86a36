"""
Storage module for Clicktrack Platform (in-memory implementation).

Responsibilities:
    - Keep click records keyed by dedup key
    - Create-or-increment records atomically (one locked section)
    - Serve campaign scans and retention deletes

Design:
    - This is an in-memory reference implementation that satisfies the BaseStorage contract.
    - It is intentionally simple to keep unit/integration tests fast and deterministic.
    - For production, use the PostgreSQL backend (db_storage.DBStorage).

LLM Prompt Example:
    "Explain how a single lock around create-or-increment prevents lost
    updates when two requests from the same device land at once."
"""

import copy
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import BaseStorage


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty storage dictionary.

        Internal schema:
            self.clicks = {
                dedup_key: {
                    "fingerprint": str,
                    "campaign_id": str,
                    "target_url": str,
                    "device": dict,
                    "first_click": datetime,
                    "last_click": datetime,
                    "click_count": int,
                    ...
                }
            }
        """
        self.clicks: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_click(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self.clicks.get(key)
            return self._export(key, record) if record is not None else None

    def upsert_click(self, key: str, document: Dict[str, Any], now: datetime) -> bool:
        """
        Create the record, or bump click_count / last_click / target_url.

        Returns:
            bool: True when the record was created by this call.
        """
        with self._lock:
            existing = self.clicks.get(key)
            if existing is None:
                self.clicks[key] = copy.deepcopy(document)
                return True
            existing["click_count"] = existing.get("click_count", 1) + 1
            existing["last_click"] = now
            existing["updated_at"] = now
            existing["target_url"] = document["target_url"]
            return False

    def scan_clicks(self, campaign_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                self._export(key, record)
                for key, record in self.clicks.items()
                if campaign_id is None or record.get("campaign_id") == campaign_id
            ]

    def delete_clicks_before(self, cutoff: datetime, batch_size: int = 500) -> int:
        """
        Remove records with last_click < cutoff.

        `batch_size` only matters for remote backends; here the sweep runs
        in one locked pass.
        """
        with self._lock:
            stale = [
                key for key, record in self.clicks.items()
                if record.get("last_click") is not None and record["last_click"] < cutoff
            ]
            for key in stale:
                del self.clicks[key]
            return len(stale)

    @staticmethod
    def _export(key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        exported = copy.deepcopy(record)
        exported["key"] = key
        return exported
