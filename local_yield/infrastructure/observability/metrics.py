"""Prometheus metrics for checkout outcomes, booking lifecycle, store credit and discovery"""

from prometheus_client import Counter, Histogram

# Checkout metrics
order_counter = Counter(
    "local_yield_order_total",
    "Order creation attempts",
    ["outcome"],  # created | replayed | <error code>
)

order_value_histogram = Histogram(
    "local_yield_order_total_cents",
    "Committed order totals in cents",
    buckets=[500, 1000, 2500, 5000, 10_000, 25_000, 50_000, 100_000],
)

# Care booking metrics
booking_transition_counter = Counter(
    "local_yield_booking_transition_total",
    "Care booking status transitions",
    ["to_status"],
)

# Store credit metrics
credit_issued_counter = Counter(
    "local_yield_credit_issued_total",
    "Store credit ledger entries written",
    ["reason"],
)

credit_issued_cents_counter = Counter(
    "local_yield_credit_issued_cents_total",
    "Store credit issued in cents",
)

# Discovery
discovery_latency_histogram = Histogram(
    "local_yield_discovery_seconds",
    "Radius matching latency",
    ["surface"],  # products | caregivers | jobs
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Domain event webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_order(outcome: str, total_cents: int | None = None) -> None:
    """Record checkout outcome; totals only for newly committed orders"""
    order_counter.labels(outcome=outcome).inc()
    if outcome == "created" and total_cents is not None:
        order_value_histogram.observe(total_cents)


def record_credit(reason: str, amount_cents: int) -> None:
    credit_issued_counter.labels(reason=reason).inc()
    credit_issued_cents_counter.inc(amount_cents)
