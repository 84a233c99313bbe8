from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)

BOOKING_ATTEMPTS = Counter(
    "booking_attempts_total",
    "Slot booking attempts by outcome",
    ["outcome"],
)

BOOKING_TRANSITIONS = Counter(
    "booking_transitions_total",
    "Booking status transitions",
    ["from_status", "to_status"],
)

BOOKINGS_EXPIRED = Counter(
    "bookings_expired_total",
    "Pending bookings moved to FAILED by the expiry sweep",
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
