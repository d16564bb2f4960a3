"""Prometheus metrics for loan throughput, rejections, returns and lock contention"""

from prometheus_client import Counter, Histogram

# Loan lifecycle metrics
loan_created_counter = Counter(
    "library_loans_created_total",
    "Total loans created",
)

loan_rejection_counter = Counter(
    "library_loan_rejections_total",
    "Loan operations refused by business rules",
    ["reason"],  # book_unavailable | loan_limit_reached | borrower_has_overdue_loans | already_returned
)

loan_return_counter = Counter(
    "library_loans_returned_total",
    "Loans returned",
    ["timeliness"],  # on_time | late
)

# Contention
lock_wait_histogram = Histogram(
    "library_row_lock_wait_seconds",
    "Time spent waiting for a row lock",
    ["table"],
    buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

lock_timeout_counter = Counter(
    "library_row_lock_timeouts_total",
    "Row lock acquisitions that timed out",
    ["table"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_created() -> None:
    loan_created_counter.inc()


def record_rejection(reason: str) -> None:
    loan_rejection_counter.labels(reason=reason).inc()


def record_return(days_late: int) -> None:
    """Record a return, bucketed by whether it came back on time"""
    timeliness = "on_time" if days_late == 0 else "late"
    loan_return_counter.labels(timeliness=timeliness).inc()
