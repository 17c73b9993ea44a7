"""Prometheus metric inventory.

Every metric the service exposes is declared here; the owning modules
import and update them at the point of action.  Scraped from /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (populated by MetricsMiddleware)
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
# Cache and background work
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)

# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

NOTIFICATIONS_CREATED = Counter(
    "notifications_created_total",
    "Notification records persisted",
    ["kind"],  # single|bulk
)

NOTIFICATION_DEDUP_HITS = Counter(
    "notification_dedup_hits_total",
    "Notifications suppressed because the dedup key was still cached",
)

CHANNEL_DELIVERIES = Counter(
    "notification_channel_deliveries_total",
    "Per-channel delivery attempts by result",
    ["channel", "result"],  # result: ok|error
)

WEBSOCKET_CONNECTIONS = Gauge(
    "websocket_connections",
    "Open WebSocket connections",
)

# ---------------------------------------------------------------------------
# Deadline scan
# ---------------------------------------------------------------------------

DEADLINE_SCAN_RUNS = Counter(
    "deadline_scan_runs_total",
    "Deadline reminder scans by outcome",
    ["outcome"],  # ok|partial|failed
)

DEADLINE_REMINDERS = Counter(
    "deadline_reminders_requested_total",
    "Deadline reminders handed to the notification dispatcher",
)
