"""Prometheus metrics for the domain operator."""

from prometheus_client import Counter, Histogram, Gauge, Info

# Reconciliation metrics
RECONCILE_TOTAL = Counter(
    "domain_operator_reconcile_total",
    "Total number of reconciliations",
    ["resource", "operation", "status"],
)

RECONCILE_DURATION = Histogram(
    "domain_operator_reconcile_duration_seconds",
    "Time spent in reconciliation",
    ["resource", "operation"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

RECONCILE_IN_PROGRESS = Gauge(
    "domain_operator_reconcile_in_progress",
    "Number of reconciliations currently in progress",
    ["resource"],
)

# Database metrics
DATABASE_QUERIES = Counter(
    "domain_operator_database_queries_total",
    "Total number of queries against the domains database",
    ["operation", "status"],
)

DATABASE_QUERY_DURATION = Histogram(
    "domain_operator_database_query_duration_seconds",
    "Time spent in database queries",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# Operator info
OPERATOR_INFO = Info(
    "domain_operator",
    "Information about the domain operator",
)

RECORD_OPERATIONS = ["get", "create", "update", "delete", "ensure_schema"]


def set_operator_info(version: str, operator_name: str) -> None:
    """Set operator info labels."""
    OPERATOR_INFO.info({"version": version, "name": operator_name})


def init_metrics() -> None:
    """Initialize all metrics with zero values.

    Prometheus metrics with labels don't appear until used.
    This ensures all metrics are visible immediately at startup.
    """
    operations = ["create", "update", "delete", "resume"]
    statuses = ["success", "error"]

    RECONCILE_IN_PROGRESS.labels(resource="Domain").set(0)
    for operation in operations:
        RECONCILE_DURATION.labels(resource="Domain", operation=operation)
        for status in statuses:
            RECONCILE_TOTAL.labels(
                resource="Domain", operation=operation, status=status
            )

    for operation in RECORD_OPERATIONS:
        DATABASE_QUERY_DURATION.labels(operation=operation)
        for status in statuses:
            DATABASE_QUERIES.labels(operation=operation, status=status)
