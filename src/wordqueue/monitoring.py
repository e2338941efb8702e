"""Monitoring configuration for the scheduler."""
from prometheus_client import Counter, start_http_server

# Queue metrics
words_added = Counter(
    "wordqueue_words_added_total",
    "Total number of words added to the learning queue",
)

responses = Counter(
    "wordqueue_responses_total",
    "Total number of card responses processed",
    ["known"],
)

stage_transitions = Counter(
    "wordqueue_stage_transitions_total",
    "Total number of stage transitions",
    ["kind"],  # promoted, demoted, learned
)

# Persistence metrics
snapshot_operations = Counter(
    "wordqueue_snapshot_operations_total",
    "Total number of state snapshot operations",
    ["operation_type"],
)

# Error metrics
error_count = Counter(
    "wordqueue_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
