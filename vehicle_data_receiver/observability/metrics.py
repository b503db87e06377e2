"""
Prometheus Metrics for the failed event dead-letter store and retry coordinator
"""

import structlog
from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = structlog.get_logger(__name__)

# Counters
events_dead_lettered_total = Counter(
    "vdr_events_dead_lettered_total",
    "Events recorded in the failed event store after a handler failure",
    ["handler"],
)

retries_total = Counter(
    "vdr_failed_event_retries_total",
    "Reprocessing attempts of failed events by handler and outcome",
    ["handler", "outcome"],
)

quarantined_total = Counter(
    "vdr_failed_events_quarantined_total",
    "Failed events excluded from automatic retry",
    ["handler", "reason"],
)

retry_pass_errors_total = Counter(
    "vdr_retry_pass_errors_total",
    "Retry passes aborted by a storage error or timeout",
    ["error_type"],
)

# Gauges
pending_failed_events = Gauge(
    "vdr_pending_failed_events", "Failed events awaiting retry"
)

quarantined_failed_events = Gauge(
    "vdr_quarantined_failed_events", "Failed events set aside from automatic retry"
)

# Histograms
retry_pass_duration_seconds = Histogram(
    "vdr_retry_pass_duration_seconds",
    "Time taken by one retry coordinator pass",
    buckets=(0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def start_metrics_server(port: int = 9090) -> None:
    """
    Start Prometheus metrics HTTP server

    Args:
        port: HTTP port to expose /metrics endpoint (default 9090)
    """
    start_http_server(port)
    logger.info("Prometheus metrics server started", port=port)


def increment_dead_lettered(handler: str) -> None:
    """Increment dead-lettered events counter"""
    events_dead_lettered_total.labels(handler=handler).inc()


def increment_retries(handler: str, outcome: str) -> None:
    """Increment retry counter for an outcome"""
    retries_total.labels(handler=handler, outcome=outcome).inc()


def increment_quarantined(handler: str, reason: str) -> None:
    """Increment quarantine counter"""
    quarantined_total.labels(handler=handler, reason=reason).inc()


def increment_pass_errors(error_type: str) -> None:
    """Increment aborted retry pass counter"""
    retry_pass_errors_total.labels(error_type=error_type).inc()


def set_store_depth(pending: int, quarantined: int) -> None:
    """Set pending and quarantined gauges"""
    pending_failed_events.set(pending)
    quarantined_failed_events.set(quarantined)


def observe_pass_duration(duration_seconds: float) -> None:
    """Observe retry pass duration histogram"""
    retry_pass_duration_seconds.observe(duration_seconds)
