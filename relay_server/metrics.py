"""
Prometheus metrics for the relay server.

Exposes relay counters and gauges via an HTTP /metrics endpoint for
Prometheus scraping.

Environment Variables:
    METRICS_ENABLED: Enable metrics server (true/false) - default: false
    METRICS_PORT: HTTP port for /metrics endpoint - default: 8080

Usage:
    from relay_server.metrics import start_metrics_server, bind_registry, MetricsHooks

    start_metrics_server(enabled=True, port=8080)
    bind_registry(registry)
    engine = RelayEngine(registry, hooks=MetricsHooks())
"""

import logging
import threading

from prometheus_client import Counter, Gauge, start_http_server

from relay.core.errors import MalformedPayloadError, SendFailureError
from relay.core.events import EventRecord
from relay.hub.hooks import RelayHooks
from relay.session.registry import SessionRegistry

logger = logging.getLogger(__name__)

# Metrics registry (module-level, created by init_metrics)
EVENTS_TOTAL: "Counter" = None  # type: ignore
DELIVERIES_TOTAL: "Counter" = None  # type: ignore
JOINS_TOTAL: "Counter" = None  # type: ignore
MALFORMED_PAYLOADS_TOTAL: "Counter" = None  # type: ignore
SEND_FAILURES_TOTAL: "Counter" = None  # type: ignore
SESSIONS_EVICTED_TOTAL: "Counter" = None  # type: ignore
SESSIONS_ACTIVE: "Gauge" = None  # type: ignore
ENDPOINTS_CONNECTED: "Gauge" = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (call once at startup).

    Thread-safe and idempotent via module-level lock.
    """
    global EVENTS_TOTAL, DELIVERIES_TOTAL, JOINS_TOTAL, MALFORMED_PAYLOADS_TOTAL
    global SEND_FAILURES_TOTAL, SESSIONS_EVICTED_TOTAL, SESSIONS_ACTIVE, ENDPOINTS_CONNECTED
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        EVENTS_TOTAL = Counter(
            "relay_events_total",
            "Total number of event records appended to session logs",
        )
        DELIVERIES_TOTAL = Counter(
            "relay_deliveries_total",
            "Total number of live fan-out deliveries handed to endpoints",
        )
        JOINS_TOTAL = Counter(
            "relay_joins_total",
            "Total number of endpoints that joined a session",
        )
        MALFORMED_PAYLOADS_TOTAL = Counter(
            "relay_malformed_payloads_total",
            "Total number of inbound messages dropped as malformed",
        )
        SEND_FAILURES_TOTAL = Counter(
            "relay_send_failures_total",
            "Total number of endpoints dropped after a failed delivery",
        )
        SESSIONS_EVICTED_TOTAL = Counter(
            "relay_sessions_evicted_total",
            "Total number of sessions removed by the eviction policy",
        )
        SESSIONS_ACTIVE = Gauge(
            "relay_sessions_active",
            "Number of sessions held in the registry",
        )
        ENDPOINTS_CONNECTED = Gauge(
            "relay_endpoints_connected",
            "Number of endpoints currently joined to a session",
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in background thread.

    Args:
        enabled: Whether to start metrics server (from METRICS_ENABLED env var)
        port: HTTP port for /metrics endpoint (from METRICS_PORT env var)
    """
    if not enabled:
        logger.info("Metrics server disabled (METRICS_ENABLED=false)")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info(f"Metrics server started on http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server: {e}")


def bind_registry(registry: SessionRegistry) -> None:
    """
    Report registry totals through the gauges at scrape time.

    No-op until init_metrics() has run.
    """
    if SESSIONS_ACTIVE is None or ENDPOINTS_CONNECTED is None:
        return
    SESSIONS_ACTIVE.set_function(lambda: registry.stats().sessions)
    ENDPOINTS_CONNECTED.set_function(lambda: registry.stats().endpoints)


def track_evicted(count: int) -> None:
    if SESSIONS_EVICTED_TOTAL is not None and count:
        SESSIONS_EVICTED_TOTAL.inc(count)


class MetricsHooks(RelayHooks):
    """Relay hooks that feed the Prometheus counters."""

    def on_join(self, token: str, endpoint_id: str, replayed: int) -> None:
        if JOINS_TOTAL is not None:
            JOINS_TOTAL.inc()

    def on_event(self, token: str, record: EventRecord, delivered: int) -> None:
        if EVENTS_TOTAL is not None:
            EVENTS_TOTAL.inc()
        if DELIVERIES_TOTAL is not None and delivered:
            DELIVERIES_TOTAL.inc(delivered)

    def on_malformed(self, token: str, error: MalformedPayloadError) -> None:
        if MALFORMED_PAYLOADS_TOTAL is not None:
            MALFORMED_PAYLOADS_TOTAL.inc()

    def on_send_failure(self, token: str, error: SendFailureError) -> None:
        if SEND_FAILURES_TOTAL is not None:
            SEND_FAILURES_TOTAL.inc()
