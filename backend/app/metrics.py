from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

REQUESTS_TOTAL = Counter(
    "requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
USERS_CREATED_TOTAL = Counter("users_created_total", "Users created through the API")
BOOTSTRAP_FAILURES_TOTAL = Counter(
    "bootstrap_failures_total",
    "Fatal bootstrap failures by phase",
    ["phase"],
)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "REQUESTS_TOTAL",
    "USERS_CREATED_TOTAL",
    "BOOTSTRAP_FAILURES_TOTAL",
    "generate_latest",
]
