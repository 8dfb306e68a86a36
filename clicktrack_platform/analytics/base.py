"""
Abstract Base Class for Analytics Backends.

Responsibilities:
    - Define the read-only views any analytics implementation must serve
    - Support easy substitution (e.g., full-scan, pre-aggregated counters)

LLM Prompt Example:
    "Create an abstract base class for click analytics and explain how a
    pre-aggregated implementation could replace a full scan without
    changing the API routes."
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

__all__ = ["AnalyticsError", "BaseAnalytics"]


class AnalyticsError(Exception):
    """Raised when analytics data cannot be read."""


class BaseAnalytics(ABC):
    """Abstract base for pluggable analytics backends."""

    @abstractmethod
    def list_campaigns(self) -> List[Dict[str, Any]]:  # pragma: no cover
        """
        Summaries for every campaign, most recently clicked first.

        Returns:
            list: [{campaign_id, unique_devices, total_clicks, last_click}, ...]
        """
        raise NotImplementedError

    @abstractmethod
    def campaign_detail(self, campaign_id: str) -> Dict[str, Any]:  # pragma: no cover
        """
        Per-device detail for one campaign.

        Args:
            campaign_id (str): Campaign to inspect.
        """
        raise NotImplementedError

    @abstractmethod
    def device_type_breakdown(self, campaign_id: str) -> Dict[str, int]:  # pragma: no cover
        raise NotImplementedError

    @abstractmethod
    def browser_breakdown(self, campaign_id: str) -> Dict[str, int]:  # pragma: no cover
        raise NotImplementedError

    @abstractmethod
    def os_breakdown(self, campaign_id: str) -> Dict[str, int]:  # pragma: no cover
        raise NotImplementedError

    @abstractmethod
    def totals(self) -> Dict[str, int]:  # pragma: no cover
        """
        Global counters.

        Returns:
            dict: {total_campaigns, total_unique_devices, total_clicks}
        """
        raise NotImplementedError
