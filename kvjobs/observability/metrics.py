"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from kvjobs.constants import (
    METRIC_CACHE_REQUESTS,
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_PUSHED_BACK,
    METRIC_QUEUE_DEPTH,
    METRIC_RATE_LIMIT_DECISIONS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector.

    Collects metrics for:
    - Queue depth
    - Job enqueues, completions and type-mismatch push-backs
    - Job execution duration
    - Cache hits, misses and fallbacks
    - Rate limit decisions
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of job references on the FIFO list",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["job_type"],
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs that reached a terminal state",
            ["job_type", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job handler duration in seconds",
            ["job_type", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.jobs_pushed_back = Counter(
            METRIC_JOBS_PUSHED_BACK,
            "Jobs returned to the queue because the worker did not support their type",
            ["job_type"],
            registry=self._registry,
        )

        # outcome: hit, miss, fallback
        self.cache_requests = Counter(
            METRIC_CACHE_REQUESTS,
            "Cache lookups by outcome",
            ["outcome"],
            registry=self._registry,
        )

        # decision: allowed, denied, fail_open
        self.rate_limit_decisions = Counter(
            METRIC_RATE_LIMIT_DECISIONS,
            "Rate limit checks by decision",
            ["scope", "decision"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_job_enqueued(self, job_type: str) -> None:
        """Record a job enqueue."""
        self.jobs_enqueued.labels(job_type=job_type).inc()

    def record_job_completed(
        self,
        job_type: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a job reaching a terminal state."""
        self.jobs_completed.labels(job_type=job_type, status=status).inc()
        self.job_duration.labels(job_type=job_type, status=status).observe(
            duration_seconds
        )

    def record_push_back(self, job_type: str) -> None:
        self.jobs_pushed_back.labels(job_type=job_type).inc()

    def update_queue_depth(self, queue: str, depth: int) -> None:
        self.queue_depth.labels(queue=queue).set(depth)

    def record_cache(self, outcome: str) -> None:
        self.cache_requests.labels(outcome=outcome).inc()

    def record_rate_limit(self, scope: str, decision: str) -> None:
        self.rate_limit_decisions.labels(scope=scope, decision=decision).inc()

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the process-wide metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the process-wide metrics collector, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
