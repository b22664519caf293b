"""
OpenID Authenticator Metrics.

Prometheus metrics for verification outcomes and latency, plus a simple
in-memory snapshot for tests and debugging.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from openid_auth import config

logger = logging.getLogger(__name__)


class VerifierMetrics:
    """
    Metrics collector for authenticator verification.

    Example:
        >>> metrics = VerifierMetrics()
        >>> with metrics.verification_timer():
        ...     authenticator.verify_secure_generic(msg, author, epoch)
        >>> metrics.record_outcome("success")
        >>> print(metrics.get_stats())
    """

    def __init__(
        self,
        namespace: Optional[str] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        """
        Initialize metrics collector.

        Args:
            namespace: Metric name prefix (defaults to OPENID_AUTH_METRICS_NAMESPACE).
            registry: Prometheus registry; a private one is created if None.
        """
        self._namespace = namespace or config.METRICS_NAMESPACE
        self._registry = registry or CollectorRegistry()
        self._lock = threading.Lock()

        self._counters: Dict[str, int] = {}
        self._durations: List[float] = []

        self._verifications = Counter(
            f"{self._namespace}_verifications_total",
            "Total authenticator verifications by outcome",
            ["outcome"],
            registry=self._registry,
        )
        self._duration = Histogram(
            f"{self._namespace}_verification_duration_seconds",
            "Authenticator verification latency in seconds",
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

    def record_outcome(self, outcome: str) -> None:
        """Record a verification outcome ("success" or an error kind)."""
        with self._lock:
            self._counters[outcome] = self._counters.get(outcome, 0) + 1
        self._verifications.labels(outcome=outcome).inc()

    def record_duration(self, duration_seconds: float) -> None:
        with self._lock:
            self._durations.append(duration_seconds)
        self._duration.observe(duration_seconds)

    @contextmanager
    def verification_timer(self):
        """Context manager for timing verifications."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_duration(time.perf_counter() - start)

    def get_stats(self) -> Dict[str, Any]:
        """Get current metrics as a dictionary."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._counters)
            if self._durations:
                stats["duration_count"] = len(self._durations)
                stats["duration_avg"] = sum(self._durations) / len(self._durations)
                stats["duration_max"] = max(self._durations)

            total = sum(self._counters.values())
            if total:
                stats["success_rate"] = self._counters.get("success", 0) / total
            return stats

    def get_prometheus_metrics(self) -> bytes:
        """Get metrics in Prometheus text format."""
        return generate_latest(self._registry)
