"""Application metrics using the Prometheus client library.

All metrics are defined here so the inventory lives in one place; the
modules that own a behavior import the metric and update it at the
point of action.

  COUNTER   only goes up (requests served, notifications emitted)
  GAUGE     goes up and down (in-flight requests, connected users)
  HISTOGRAM bucketed observations (request latency)
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
# Coursework metrics
# ---------------------------------------------------------------------------

GRADES_POSTED = Counter(
    "grades_posted_total",
    "Submissions graded successfully",
)

ENROLLMENTS_CREATED = Counter(
    "enrollments_created_total",
    "Enrollments created successfully",
)

SUBMISSIONS_RECEIVED = Counter(
    "submissions_received_total",
    "Assignment submissions accepted from students",
    ["kind"],  # "new" or "resubmission"
)

# ---------------------------------------------------------------------------
# Realtime notification metrics
# ---------------------------------------------------------------------------

NOTIFICATIONS_EMITTED = Counter(
    "notifications_emitted_total",
    "Notification events fanned out by the gateway",
    ["kind"],  # "gradeUpdate" or "enrollmentUpdate"
)

NOTIFICATION_FAILURES = Counter(
    "notification_failures_total",
    "Notification emissions that raised and were suppressed by the caller",
    ["kind"],
)

CONNECTED_USERS = Gauge(
    "realtime_connected_users",
    "Users with a live realtime session in this process",
)

REALTIME_AUTH_FAILURES = Counter(
    "realtime_auth_failures_total",
    "Realtime handshakes rejected for a missing or invalid credential",
    ["reason"],  # "missing" or "invalid"
)
