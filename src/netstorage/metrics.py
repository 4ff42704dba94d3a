"""Prometheus metrics definitions for netstorage.

All netstorage metrics use the ``netstorage_`` prefix. They count ACS
requests issued by this process, labelled by action name and HTTP status,
plus the body bytes sent and received.

The collectors live in the global ``prometheus_client`` registry and are
created once per process by :func:`init_metrics`; clients built with metrics
disabled never touch them.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# ACS request counter  (labels: action, status)
# ---------------------------------------------------------------------------
acs_requests_total: Counter | None = None

# ---------------------------------------------------------------------------
# Byte counters
# ---------------------------------------------------------------------------
bytes_sent_total: Counter | None = None
bytes_received_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call repeatedly; only the first call registers collectors.
    """
    global _initialized
    global acs_requests_total, bytes_sent_total, bytes_received_total

    if _initialized:
        return

    acs_requests_total = Counter(
        "netstorage_acs_requests_total",
        "Total ACS requests by action and HTTP status",
        ["action", "status"],
    )

    bytes_sent_total = Counter(
        "netstorage_bytes_sent_total",
        "Total bytes sent in request bodies",
    )

    bytes_received_total = Counter(
        "netstorage_bytes_received_total",
        "Total bytes announced in response bodies",
    )

    _initialized = True


def record_request(action: str, status: int, sent: int = 0, received: int = 0) -> None:
    """Record one completed ACS request. No-op until init_metrics() runs."""
    if not _initialized:
        return
    assert acs_requests_total is not None
    assert bytes_sent_total is not None
    assert bytes_received_total is not None
    acs_requests_total.labels(action=action or "none", status=str(status)).inc()
    if sent > 0:
        bytes_sent_total.inc(sent)
    if received > 0:
        bytes_received_total.inc(received)
