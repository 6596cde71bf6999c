"""Prometheus metrics for the authorization core."""

from prometheus_client import Counter, Gauge

AUTHZ_DECISIONS = Counter(
    "cleanapi_authz_decisions_total",
    "Authorization decisions made by the policy engine",
    ["outcome", "reason"],
)

POLICY_CACHE_RELOADS = Counter(
    "cleanapi_policy_cache_reloads_total",
    "Policy cache reload attempts",
    ["result"],
)

POLICY_CACHE_DOCUMENTS = Gauge(
    "cleanapi_policy_cache_documents",
    "Active policy documents held by the policy cache",
)
