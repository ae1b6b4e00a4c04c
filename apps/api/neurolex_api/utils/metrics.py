"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Purchase metrics
purchase_attempts = Counter(
    "neurolex_purchase_attempts_total",
    "Token purchase attempts by outcome",
    ["outcome"],
)

# Wallet linkage metrics
wallet_links = Counter(
    "neurolex_wallet_links_total",
    "Wallet link attempts by outcome",
    ["outcome"],
)

# Chain access metrics
chain_lookups = Counter(
    "neurolex_chain_lookups_total",
    "Chain node lookups",
    ["method", "result"],
)

chain_lookup_duration = Histogram(
    "neurolex_chain_lookup_duration_seconds",
    "Chain node lookup duration",
    ["method"],
)

# Rate limiting metrics
rate_limit_rejections = Counter(
    "neurolex_rate_limit_rejections_total",
    "Requests rejected by the rate limiter",
)

rate_limit_backend_errors = Counter(
    "neurolex_rate_limit_backend_errors_total",
    "Rate limiter requests let through because Redis was unavailable",
)
