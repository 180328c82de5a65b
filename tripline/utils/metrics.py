"""Prometheus metrics for schedule validation and version commits."""

from prometheus_client import Counter, Histogram

plan_versions_committed_total = Counter(
    "plan_versions_committed_total",
    "Total plan versions written",
    ["operation"],
)

plan_version_rejections_total = Counter(
    "plan_version_rejections_total",
    "Total candidate schedules rejected by validation",
    ["code"],
)

plan_version_conflicts_total = Counter(
    "plan_version_conflicts_total",
    "Optimistic version conflicts detected at commit",
    ["outcome"],
)

plan_version_commit_attempts = Histogram(
    "plan_version_commit_attempts",
    "Attempts needed to commit a plan version",
    ["operation"],
    buckets=[1, 2, 3, 5],
)

time_normalization_fallbacks_total = Counter(
    "time_normalization_fallbacks_total",
    "Time strings that could not be parsed and fell back to the default",
)


class PrometheusVersionMetrics:
    """Prometheus-based version metrics implementation."""

    def inc_committed(self, operation: str, attempts: int) -> None:
        """Record a committed version and the attempts it took."""
        plan_versions_committed_total.labels(operation=operation).inc()
        plan_version_commit_attempts.labels(operation=operation).observe(attempts)

    def inc_rejection(self, code: str) -> None:
        plan_version_rejections_total.labels(code=code).inc()

    def inc_conflict(self, outcome: str) -> None:
        """Increment conflict counter (outcome: retried | exhausted)."""
        plan_version_conflicts_total.labels(outcome=outcome).inc()

    def inc_time_fallback(self) -> None:
        time_normalization_fallbacks_total.inc()
