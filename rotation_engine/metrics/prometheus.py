# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "rotation_requests_total",
    "Total HTTP requests to rotation service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "rotation_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "rotation_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
SCHEDULE_VALIDATIONS = Counter(
    "rotation_schedule_validations_total",
    "Total schedule validations performed",
    ["result"],
)
EXECUTIONS_CREATED = Counter(
    "rotation_executions_created_total",
    "Total executions initialized",
)
EXECUTIONS_FINISHED = Counter(
    "rotation_executions_finished_total",
    "Total executions that reached a terminal state or were aborted",
    ["outcome"],
)
ACTIVE_EXECUTIONS = Gauge(
    "rotation_active_executions",
    "Number of executions currently registered",
)
ROTATION_CHANGES = Counter(
    "rotation_changes_total",
    "Total rotation transitions performed",
)
SESSIONS_PROJECTED = Counter(
    "rotation_sessions_projected_total",
    "Total session records projected",
)
ALERTS_RAISED = Counter(
    "rotation_alerts_total",
    "Total alerts raised",
    ["type", "priority"],
)
NOTIFICATIONS_SENT = Counter(
    "rotation_notifications_sent_total",
    "Total alert notifications forwarded",
    ["channel"],
)
