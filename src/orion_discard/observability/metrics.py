"""
Prometheus metrics collection for orion-discard

Counts scans by outcome, discard transitions, store latency and table
activity so the discard station can be monitored.
"""
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# SCAN METRICS
# =======================

# Scan submissions by outcome: success, conflict, validation_error, failed, rejected_busy
scans_total = Counter(
    name="orion_discard_scans_total",
    documentation="Total number of scan submissions by outcome",
    labelnames=["site", "outcome"],
    registry=REGISTRY,
)

# Discard transitions: mark, unmark
discard_transitions_total = Counter(
    name="orion_discard_transitions_total",
    documentation="Total number of discard status transitions applied to records",
    labelnames=["site", "action"],
    registry=REGISTRY,
)

# Barcode lookups by result: found, not_found, already_discarded
barcode_lookups_total = Counter(
    name="orion_discard_barcode_lookups_total",
    documentation="Total number of barcode lookups against the record store",
    labelnames=["site", "result"],
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

store_operation_duration_seconds = Histogram(
    name="orion_discard_store_operation_duration_seconds",
    documentation="Time spent in record store operations in seconds",
    labelnames=["store", "operation"],  # operation: query, update, insert
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
    registry=REGISTRY,
)

store_errors_total = Counter(
    name="orion_discard_store_errors_total",
    documentation="Total number of record store failures",
    labelnames=["store", "operation"],
    registry=REGISTRY,
)

# =======================
# TABLE METRICS
# =======================

table_rows = Gauge(
    name="orion_discard_table_rows",
    documentation="Rows currently displayed in the discard table",
    labelnames=["status"],  # status: Discarded, Pending
    registry=REGISTRY,
)

table_loads_total = Counter(
    name="orion_discard_table_loads_total",
    documentation="Total number of full table loads",
    labelnames=["status"],  # status: success, rejected
    registry=REGISTRY,
)

# =======================
# FETCH METRICS
# =======================

record_fetch_retries_total = Counter(
    name="orion_discard_record_fetch_retries_total",
    documentation="Total number of record fetch retry attempts",
    labelnames=["status"],  # status: success, failure
    registry=REGISTRY,
)

stale_responses_total = Counter(
    name="orion_discard_stale_responses_total",
    documentation="Record fetch responses dropped because a newer request was issued",
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(store_operation_duration_seconds, store="postgres", operation="query"):
            ...
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """Set a gauge metric value"""
    gauge.labels(**labels).set(value)


# =======================
# DOMAIN HELPERS
# =======================

def record_scan(site: str, outcome: str) -> None:
    """
    Record the outcome of one scan submission.

    Args:
        site: Active site code
        outcome: success, conflict, validation_error, failed or rejected_busy
    """
    increment_counter(scans_total, 1, site=site or "unknown", outcome=outcome)


def record_transition(site: str, action: str) -> None:
    """Record a discard mark/unmark applied to a stored record."""
    increment_counter(discard_transitions_total, 1, site=site or "unknown", action=action)


def record_lookup(site: str, result: str) -> None:
    increment_counter(barcode_lookups_total, 1, site=site or "unknown", result=result)


def record_table_state(discarded: int, pending: int) -> None:
    """
    Publish the displayed row counts.

    Args:
        discarded: Rows with status Discarded
        pending: Rows with status Pending
    """
    set_gauge(table_rows, discarded, status="Discarded")
    set_gauge(table_rows, pending, status="Pending")
