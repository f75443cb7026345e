"""Prometheus metrics for monitoring tier distribution, data quality and Gnosis Pay health"""

from prometheus_client import Counter, Histogram

# Rewards metrics
rewards_request_counter = Counter(
    "payments_rewards_requests_total",
    "Rewards views computed",
    ["tier"],  # No Cashback | Bronze | Silver | Gold | Platinum
)

skipped_transactions_counter = Counter(
    "payments_skipped_transactions_total",
    "Malformed transactions left out of cashback statistics",
)

# Gnosis Pay metrics
gnosis_pay_latency_histogram = Histogram(
    "gnosis_pay_latency_seconds",
    "Gnosis Pay API response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

gnosis_pay_failures_counter = Counter(
    "gnosis_pay_failures_total",
    "Failed Gnosis Pay API calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_rewards(tier_label: str, skipped_count: int) -> None:
    """Record tier distribution and how many records were unusable"""
    rewards_request_counter.labels(tier=tier_label).inc()

    if skipped_count:
        skipped_transactions_counter.inc(skipped_count)
