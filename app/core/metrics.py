"""Prometheus metric inventory for progress-service.

Every metric the service exports is declared here; the modules that own
the behaviour import and increment them at the point of action.  The
HTTP metrics are fed by MetricsMiddleware, the domain metrics by the
progress service after a tracker has produced (or refused) new state.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
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
# Progress engine metrics
# ---------------------------------------------------------------------------

LESSON_EVENTS = Counter(
    "lesson_events_total",
    "Lesson progress events applied",
    ["kind"],  # completed|time_only|duplicate
)

TEST_ATTEMPTS = Counter(
    "test_attempts_total",
    "Test attempt submissions by outcome",
    ["result"],  # graded|exhausted
)

LOGINS = Counter(
    "logins_total",
    "Recorded logins by effect on the activity streak",
    ["streak"],  # started|extended|reset
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Progress cache operations by result",
    ["operation"],  # hit|miss|error
)

RECORD_STORE_CONFLICTS = Counter(
    "record_store_conflicts_total",
    "Writes rejected by the optimistic version check",
    ["record"],  # course_progress|test_progress|user_activity
)
