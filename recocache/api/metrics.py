"""Metrics service for tracking recommendation outcomes.

Singleton service counting requests per outcome and their latency.
"""

import threading
from typing import Dict

OUTCOMES = ("cache", "retrain", "fallback", "failure")


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters per outcome plus latency tracking.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._outcomes: Dict[str, int] = {outcome: 0 for outcome in OUTCOMES}
        self._request_count = 0
        self._total_latency_ms = 0.0
        self._min_latency_ms = float('inf')
        self._max_latency_ms = 0.0

    def record_request(self, outcome: str, latency_ms: float) -> None:
        """Record a recommendation request with its outcome and latency.

        Args:
            outcome: One of "cache", "retrain", "fallback" or "failure"
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            self._outcomes[outcome] = self._outcomes.get(outcome, 0) + 1
            self._request_count += 1
            self._total_latency_ms += latency_ms

            if latency_ms < self._min_latency_ms:
                self._min_latency_ms = latency_ms

            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - request_count: Total number of recommendation requests
            - outcomes: Requests per outcome
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._request_count
                if self._request_count > 0
                else 0.0
            )

            return {
                "request_count": self._request_count,
                "outcomes": dict(self._outcomes),
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(self._min_latency_ms, 2) if self._min_latency_ms != float('inf') else 0.0,
                "max_latency_ms": round(self._max_latency_ms, 2),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
