"""
Analytics module for Clicktrack Platform.

Responsibilities:
    - Roll click records up into per-campaign summaries
    - Provide per-device detail and device/browser/OS breakdowns
    - Provide global totals

Notes:
    - Pure reads: every view is a full scan of the store at query time.
      That is fine at demo scale; pre-aggregated counters would replace it.
    - A record missing click_count counts as 1 click.
    - Storage failures surface as AnalyticsError.

LLM Prompt Example:
    "Explain how to extend this module to maintain per-campaign counters
    incrementally instead of scanning every record on each request."
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..storage.base import BaseStorage, StorageError
from ..storage.click_store import ClickStore
from .base import AnalyticsError, BaseAnalytics

log = logging.getLogger("clicktrack.analytics")

DEVICE_TYPES = ("mobile", "tablet", "desktop", "unknown")


def _click_count(record: Dict[str, Any]) -> int:
    return record.get("click_count") or 1


class Analytics(BaseAnalytics):
    def __init__(self, store):
        """
        Args:
            store (ClickStore | BaseStorage): Source of click records.
        """
        self.storage: BaseStorage = store.storage if isinstance(store, ClickStore) else store

    def _scan(self, campaign_id: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            return self.storage.scan_clicks(campaign_id)
        except StorageError as exc:
            log.error("Failed to read click records: %s", exc)
            raise AnalyticsError("Failed to fetch analytics data") from exc

    def list_campaigns(self) -> List[Dict[str, Any]]:
        """
        Summaries per campaign, most recent last_click first.

        Returns:
            List[Dict[str, Any]]: e.g.
                [{"campaign_id": "instagram-bio", "unique_devices": 3,
                  "total_clicks": 4, "last_click": datetime(...)}]

        Campaigns without any last_click sort last.
        """
        campaigns: Dict[str, Dict[str, Any]] = {}
        for record in self._scan():
            campaign_id = record.get("campaign_id")
            summary = campaigns.setdefault(campaign_id, {
                "campaign_id": campaign_id,
                "unique_devices": 0,
                "total_clicks": 0,
                "last_click": None,
            })
            summary["unique_devices"] += 1
            summary["total_clicks"] += _click_count(record)

            last_click: Optional[datetime] = record.get("last_click")
            if last_click is not None and (summary["last_click"] is None or last_click > summary["last_click"]):
                summary["last_click"] = last_click

        clicked = [c for c in campaigns.values() if c["last_click"] is not None]
        never = [c for c in campaigns.values() if c["last_click"] is None]
        clicked.sort(key=lambda c: c["last_click"], reverse=True)
        return clicked + never

    def campaign_detail(self, campaign_id: str) -> Dict[str, Any]:
        """
        Device-level detail for one campaign.

        Each entry's "fingerprint" is the record's dedup key, so the same
        device clicking two targets shows up twice.
        """
        devices = []
        total_clicks = 0
        for record in self._scan(campaign_id):
            count = _click_count(record)
            devices.append({
                "fingerprint": record["key"],
                "device": record.get("device") or {},
                "first_click": record.get("first_click"),
                "last_click": record.get("last_click"),
                "click_count": count,
                "referrer": record.get("referrer") or None,
            })
            total_clicks += count

        return {
            "campaign_id": campaign_id,
            "unique_devices": len(devices),
            "total_clicks": total_clicks,
            "devices": devices,
        }

    def device_type_breakdown(self, campaign_id: str) -> Dict[str, int]:
        breakdown = {device_type: 0 for device_type in DEVICE_TYPES}
        for record in self._scan(campaign_id):
            device_type = (record.get("device") or {}).get("type", "unknown")
            if device_type not in breakdown:
                device_type = "unknown"
            breakdown[device_type] += 1
        return breakdown

    def browser_breakdown(self, campaign_id: str) -> Dict[str, int]:
        return self._count_by(campaign_id, "browser")

    def os_breakdown(self, campaign_id: str) -> Dict[str, int]:
        return self._count_by(campaign_id, "os")

    def totals(self) -> Dict[str, int]:
        campaigns = self.list_campaigns()
        return {
            "total_campaigns": len(campaigns),
            "total_unique_devices": sum(c["unique_devices"] for c in campaigns),
            "total_clicks": sum(c["total_clicks"] for c in campaigns),
        }

    def _count_by(self, campaign_id: str, field: str) -> Dict[str, int]:
        stats: Dict[str, int] = {}
        for record in self._scan(campaign_id):
            name = (record.get("device") or {}).get(field) or "Unknown"
            stats[name] = stats.get(name, 0) + 1
        return stats
