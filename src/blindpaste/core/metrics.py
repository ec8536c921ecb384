"""
Prometheus metrics collection.

In-memory counters on a registry owned by the collector; Prometheus
scrapes them from /metrics. Labels never carry paste ids or client keys.
"""

import time
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for BlindPaste.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # Service info
        self.service_info = Info(
            "blindpaste_service",
            "BlindPaste service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "blindpaste",
        })

        # Operation metrics
        self.operations_total = Counter(
            "blindpaste_operations_total",
            "Dispatched operations by outcome",
            ["operation", "status"],
            registry=self.registry,
        )

        self.operation_duration = Histogram(
            "blindpaste_operation_duration_seconds",
            "Operation duration in seconds",
            ["operation"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=self.registry,
        )

        # Lifecycle metrics
        self.pastes_created_total = Counter(
            "blindpaste_pastes_created_total",
            "Total pastes stored",
            registry=self.registry,
        )

        self.comments_created_total = Counter(
            "blindpaste_comments_created_total",
            "Total comments stored",
            registry=self.registry,
        )

        self.pastes_deleted_total = Counter(
            "blindpaste_pastes_deleted_total",
            "Total pastes removed",
            ["reason"],
            registry=self.registry,
        )

        self.submissions_rejected_total = Counter(
            "blindpaste_submissions_rejected_total",
            "Total submissions refused",
            ["reason"],
            registry=self.registry,
        )

        self.ciphertext_size_bytes = Histogram(
            "blindpaste_ciphertext_size_bytes",
            "Size of accepted ciphertexts in bytes",
            buckets=[1024, 16384, 65536, 262144, 1048576, 4194304, 10485760, 52428800],
            registry=self.registry,
        )

        # Purge metrics
        self.purge_runs_total = Counter(
            "blindpaste_purge_runs_total",
            "Purge passes by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "blindpaste_uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_operation(self, operation: str, status: int, duration_seconds: float) -> None:
        """Record a dispatched operation."""
        self.operations_total.labels(
            operation=operation,
            status="ok" if status == 0 else "error",
        ).inc()
        self.operation_duration.labels(operation=operation).observe(duration_seconds)

    def record_paste_created(self, size_bytes: int) -> None:
        self.pastes_created_total.inc()
        self.ciphertext_size_bytes.observe(size_bytes)

    def record_comment_created(self, size_bytes: int) -> None:
        self.comments_created_total.inc()
        self.ciphertext_size_bytes.observe(size_bytes)

    def record_paste_deleted(self, reason: str, count: int = 1) -> None:
        """Record removals; reason is one of token, burn, expired."""
        if count > 0:
            self.pastes_deleted_total.labels(reason=reason).inc(count)

    def record_rejection(self, reason: str) -> None:
        self.submissions_rejected_total.labels(reason=reason).inc()

    def record_purge(self, outcome: str, purged: int = 0) -> None:
        """Record a purge pass; outcome is one of ran, skipped, failed."""
        self.purge_runs_total.labels(outcome=outcome).inc()
        self.record_paste_deleted("expired", purged)

    def update_system_metrics(self) -> None:
        self.uptime_seconds.set(time.time() - self._start_time)
