from shared.metrics import get_counter, get_histogram

_SERVICE = "post_metrics"

# Tier resolution
TIER_HITS_TOTAL = get_counter(
    "tier_hits_total",
    "Metric values resolved, by the tier that produced them.",
    _SERVICE,
    labelnames=("tier",),
)
PRIMARY_UNAVAILABLE_TOTAL = get_counter(
    "primary_unavailable_total",
    "Resolutions that found the primary store unavailable.",
    _SERVICE,
)
PRIMARY_QUERY_ERRORS_TOTAL = get_counter(
    "primary_query_errors_total",
    "Primary store queries that failed after availability was confirmed.",
    _SERVICE,
)

# Remote analytics API
REMOTE_CHUNK_FAILURES_TOTAL = get_counter(
    "remote_chunk_failures_total",
    "Remote chunk fetches that contributed zero, by failure kind.",
    _SERVICE,
    labelnames=("kind",),
)
REMOTE_FETCHES_SKIPPED_TOTAL = get_counter(
    "remote_fetches_skipped_total",
    "Remote fetches skipped before any request was issued.",
    _SERVICE,
    labelnames=("reason",),
)

# Cache tiers
CACHE_TIER_ERRORS_TOTAL = get_counter(
    "cache_tier_errors_total",
    "Redis failures in a cache tier or the sort projection.",
    _SERVICE,
    labelnames=("tier", "op"),
)

RESOLUTION_LATENCY_SECONDS = get_histogram(
    "resolution_latency_seconds",
    "Latency of a single subject resolution.",
    _SERVICE,
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
