"""Prometheus metric inventory.

Every metric the service exports is defined here; other modules import
the one they need and increment/observe it at the point of action.

HTTP metrics are recorded by MetricsMiddleware for every request.  The
learning metrics below are recorded by the progress service only when a
state transition actually happens (an idempotent re-completion does not
count twice).
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)

# ---------------------------------------------------------------------------
# Learning
# ---------------------------------------------------------------------------

LESSON_TRANSITIONS = Counter(
    "lesson_transitions_total",
    "Lesson completion state changes",
    ["action"],  # complete|uncomplete
)

QUIZ_ATTEMPTS = Counter(
    "quiz_attempts_total",
    "Recorded quiz attempts by outcome against the pass threshold",
    ["result"],  # passed|failed
)

COURSES_COMPLETED = Counter(
    "courses_completed_total",
    "Progress entries that reached 100% for the first time",
)
