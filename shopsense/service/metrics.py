"""Metrics service for tracking engine calls.

Singleton service counting calls and latency per operation.
"""

import threading
from typing import Dict


class _OperationStats:
    __slots__ = ("count", "total_ms", "min_ms", "max_ms")

    def __init__(self) -> None:
        self.count = 0
        self.total_ms = 0.0
        self.min_ms = float("inf")
        self.max_ms = 0.0

    def add(self, latency_ms: float) -> None:
        self.count += 1
        self.total_ms += latency_ms
        self.min_ms = min(self.min_ms, latency_ms)
        self.max_ms = max(self.max_ms, latency_ms)

    def snapshot(self) -> Dict:
        average = self.total_ms / self.count if self.count > 0 else 0.0
        return {
            "call_count": self.count,
            "average_latency_ms": round(average, 2),
            "min_latency_ms": round(self.min_ms, 2) if self.count > 0 else 0.0,
            "max_latency_ms": round(self.max_ms, 2),
        }


class MetricsService:
    """Singleton service for tracking engine metrics.

    Thread-safe call counters and latency tracking, keyed by operation name
    ("search", "similar", "recommend", "popular").
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
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._operations: Dict[str, _OperationStats] = {}
        self._initialized = True

    def record_call(self, operation: str, latency_ms: float) -> None:
        """Record one call of `operation` with its latency in milliseconds."""
        with self._lock:
            stats = self._operations.get(operation)
            if stats is None:
                stats = self._operations[operation] = _OperationStats()
            stats.add(latency_ms)

    def get_metrics(self) -> Dict[str, Dict]:
        """Get current metrics.

        Returns:
            Dictionary keyed by operation, each value with:
            - call_count: Number of calls
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
        """
        with self._lock:
            return {name: stats.snapshot() for name, stats in self._operations.items()}

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._operations = {}


# Global singleton instance
metrics_service = MetricsService()
