"""Monitoring configuration for the drill bot."""
from prometheus_client import Counter, Gauge, start_http_server

# Session metrics
active_sessions = Gauge(
    "vocabdrill_active_sessions",
    "Number of drill sessions currently in progress",
)

sessions_started = Counter(
    "vocabdrill_sessions_started_total",
    "Total number of drill sessions started or restarted",
)

sessions_completed = Counter(
    "vocabdrill_sessions_completed_total",
    "Total number of drill sessions completed",
)

# Answer metrics
answers = Counter(
    "vocabdrill_answers_total",
    "Total number of submitted answers",
    ["result"],
)

# Error metrics
completion_record_errors = Counter(
    "vocabdrill_completion_record_errors_total",
    "Total number of failures while recording a lesson completion",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
