"""Prometheus metrics for linear-rpc.

Cardinality rule: operation names and cache kinds are labels (bounded, fixed
in code). Identifier values are never labels.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Lazy-load prometheus_client to allow graceful degradation
_prom = None


def _get_prom():
    """Lazily import prometheus_client."""
    global _prom
    if _prom is None:
        try:
            import prometheus_client
            _prom = prometheus_client
        except ImportError:
            logger.warning("prometheus_client not installed; metrics disabled")
            _prom = False
    return _prom if _prom else None


# --- Metric singletons (created on first access) ---

_metrics = {}


def _metric(name, metric_type, description, labelnames=(), **kwargs):
    """Get or create a Prometheus metric."""
    if name in _metrics:
        return _metrics[name]
    prom = _get_prom()
    if prom is None:
        _metrics[name] = None
        return None
    cls = getattr(prom, metric_type)
    m = cls(name, description, labelnames=labelnames, **kwargs)
    _metrics[name] = m
    return m


def linear_api_latency():
    return _metric(
        "linear_api_latency_seconds",
        "Histogram",
        "Linear API operation latency in seconds, including retries",
        labelnames=["operation"],
        buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    )


def linear_api_requests_total():
    return _metric(
        "linear_api_requests_total",
        "Counter",
        "Total Linear API operations by outcome",
        labelnames=["operation", "status"],
    )


def linear_api_attempt_failures_total():
    return _metric(
        "linear_api_attempt_failures_total",
        "Counter",
        "Total failed attempts (including retried ones) per operation",
        labelnames=["operation"],
    )


def linear_rate_limited_total():
    return _metric(
        "linear_rate_limited_total",
        "Counter",
        "Total number of rate limit hits from the Linear API",
    )


def resolver_cache_total():
    return _metric(
        "linear_resolver_cache_total",
        "Counter",
        "Identifier resolver cache lookups by kind and result",
        labelnames=["kind", "result"],
    )


# --- Helper functions for recording metrics ---

def record_operation(operation: str, status: str, duration: Optional[float] = None):
    total = linear_api_requests_total()
    if total:
        total.labels(operation=operation, status=status).inc()
    if duration is not None:
        latency = linear_api_latency()
        if latency:
            latency.labels(operation=operation).observe(duration)


def record_attempt_failure(operation: str):
    m = linear_api_attempt_failures_total()
    if m:
        m.labels(operation=operation).inc()


def record_rate_limited():
    m = linear_rate_limited_total()
    if m:
        m.inc()


def record_cache_lookup(kind: str, hit: bool):
    m = resolver_cache_total()
    if m:
        m.labels(kind=kind, result="hit" if hit else "miss").inc()


def generate_metrics_text() -> Optional[str]:
    """Generate Prometheus metrics text output."""
    prom = _get_prom()
    if prom is None:
        return None
    return prom.generate_latest().decode("utf-8")
