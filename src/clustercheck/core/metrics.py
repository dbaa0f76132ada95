"""Prometheus metrics plumbing (opt-in).

When METRICS_ENABLED=false, this module should not register collectors.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from clustercheck.core.config import settings

_registry: CollectorRegistry | None = None
_c_checks: Counter | None = None
_c_query_failures: Counter | None = None
_h_query_latency: Histogram | None = None
_c_override_changes: Counter | None = None


def _buckets() -> list[float]:
    try:
        return [float(x) for x in (settings.METRICS_BUCKETS or "").split(",") if x]
    except Exception:
        return [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 5]


def init_metrics() -> None:
    global _registry, _c_checks, _c_query_failures, _h_query_latency, _c_override_changes
    if not settings.METRICS_ENABLED:
        return
    if _registry is not None:
        return  # avoid duplicate collectors on reload
    _registry = CollectorRegistry()
    ns = settings.METRICS_NAMESPACE
    _c_checks = Counter(
        f"{ns}_checks_total",
        "Health check verdicts",
        labelnames=("route", "state", "status"),
        registry=_registry,
    )
    _c_query_failures = Counter(
        f"{ns}_query_failures_total",
        "Status queries that failed or timed out",
        labelnames=("query",),
        registry=_registry,
    )
    _h_query_latency = Histogram(
        f"{ns}_query_latency_seconds",
        "Status query duration",
        labelnames=("query",),
        buckets=_buckets(),
        registry=_registry,
    )
    _c_override_changes = Counter(
        f"{ns}_override_changes_total",
        "Operator override changes",
        labelnames=("override",),
        registry=_registry,
    )


def count_check(route: str, state: str, status: int) -> None:
    if not settings.METRICS_ENABLED or _registry is None:
        return
    _c_checks.labels(route=route, state=state, status=str(status)).inc()


def count_query_failure(query: str) -> None:
    if not settings.METRICS_ENABLED or _registry is None:
        return
    _c_query_failures.labels(query=query).inc()


def observe_query(query: str, seconds: float) -> None:
    if not settings.METRICS_ENABLED or _registry is None:
        return
    _h_query_latency.labels(query=query).observe(max(seconds, 0.0))


def count_override_change(override: str) -> None:
    if not settings.METRICS_ENABLED or _registry is None:
        return
    _c_override_changes.labels(override=override).inc()


def metrics_exposition() -> tuple[bytes, str]:
    if not settings.METRICS_ENABLED or _registry is None:
        return (b"metrics disabled", CONTENT_TYPE_LATEST)
    data = generate_latest(_registry)
    return (data, CONTENT_TYPE_LATEST)
