"""Prometheus metrics configuration."""

from prometheus_client import Counter, Gauge, Histogram

# Session Metrics
session_ready = Gauge("session_ready", "Whether the browser session is ready (1) or not (0)")

session_initializations_total = Counter(
    "session_initializations_total",
    "Total browser session initializations",
    ["outcome"],
)

session_recoveries_scheduled_total = Counter(
    "session_recoveries_scheduled_total",
    "Total deferred session recoveries scheduled",
    ["reason"],
)

session_recoveries_collapsed_total = Counter(
    "session_recoveries_collapsed_total",
    "Total recovery triggers collapsed into an in-flight recovery",
    ["reason"],
)

session_health_checks_total = Counter(
    "session_health_checks_total", "Total session health checks", ["result"]
)

# Browser Operation Metrics
browser_operations_total = Counter(
    "browser_operations_total", "Total browser operations", ["operation", "outcome"]
)

browser_operation_duration_seconds = Histogram(
    "browser_operation_duration_seconds",
    "Browser operation duration in seconds",
    ["operation"],
)

screenshots_published_total = Counter(
    "screenshots_published_total", "Total periodic screenshots published", ["outcome"]
)

# WebSocket Metrics
websocket_connections_active = Gauge(
    "websocket_connections_active", "Number of open WebSocket control connections"
)

websocket_messages_total = Counter(
    "websocket_messages_total", "Total inbound WebSocket messages", ["type"]
)
