"""Prometheus metrics for payments, score computations and the user directory"""

from prometheus_client import Counter, Histogram

# Ledger metrics
payment_counter = Counter(
    "meinha_payments_total",
    "Payments applied to debt chains",
    ["outcome"],  # closed | split | rejection reason | stale
)

debt_created_counter = Counter(
    "meinha_debts_created_total",
    "Debt chains opened",
)

# Score metrics
score_counter = Counter(
    "meinha_score_calculations_total",
    "Reputation scores computed",
    ["classification"],
)

score_skipped_debts_counter = Counter(
    "meinha_score_skipped_debts_total",
    "Malformed debt records excluded from scoring",
)

score_duration_histogram = Histogram(
    "meinha_score_duration_seconds",
    "Time spent replaying a user's debt history",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# User directory metrics
user_directory_failures_counter = Counter(
    "user_directory_failures_total",
    "Failed user directory calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(outcome: str) -> None:
    payment_counter.labels(outcome=outcome).inc()


def record_score(classification: str, skipped: int) -> None:
    """Record score metrics for monitoring tier distribution and data quality"""
    score_counter.labels(classification=classification).inc()
    if skipped:
        score_skipped_debts_counter.inc(skipped)
