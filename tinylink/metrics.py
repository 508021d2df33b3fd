"""Prometheus metrics for link allocation, redirects and click accounting."""

from prometheus_client import Counter, Histogram

__all__ = [
    "ALLOCATION_ATTEMPTS",
    "ALLOCATION_FAILURES_TOTAL",
    "CACHE_LOOKUPS_TOTAL",
    "CLICKS_FAILED_TOTAL",
    "CLICKS_RECORDED_TOTAL",
    "CODE_COLLISIONS_TOTAL",
    "LINKS_CREATED_TOTAL",
    "REDIRECTS_TOTAL",
]

# Allocation metrics
LINKS_CREATED_TOTAL = Counter(
    "tinylink_links_created_total",
    "Total links created",
    ["mode"],
)
ALLOCATION_FAILURES_TOTAL = Counter(
    "tinylink_allocation_failures_total",
    "Total create-link requests that did not produce a link",
    ["reason"],
)
CODE_COLLISIONS_TOTAL = Counter(
    "tinylink_code_collisions_total",
    "Generated candidates that turned out to be taken",
    ["stage"],
)
ALLOCATION_ATTEMPTS = Histogram(
    "tinylink_allocation_attempts",
    "Attempts used per generated-code allocation",
    buckets=[1, 2, 3, 4, 5, 6, 7, 8, 9, 10],
)

# Redirect metrics
REDIRECTS_TOTAL = Counter(
    "tinylink_redirects_total",
    "Total redirect lookups",
    ["outcome"],
)
CLICKS_RECORDED_TOTAL = Counter(
    "tinylink_clicks_recorded_total",
    "Clicks successfully accounted",
)
CLICKS_FAILED_TOTAL = Counter(
    "tinylink_clicks_failed_total",
    "Clicks lost because the counter update failed",
)

# Cache metrics
CACHE_LOOKUPS_TOTAL = Counter(
    "tinylink_cache_lookups_total",
    "Redirect cache lookups",
    ["status"],
)
