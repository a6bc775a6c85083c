from __future__ import annotations

from prometheus_client import Counter, Histogram

STORE_REQUESTS_TOTAL = Counter(
    "cluster_refs_store_requests_total",
    "Number of object store requests",
    labelnames=("operation", "kind", "result"),
)

STORE_REQUEST_DURATION = Histogram(
    "cluster_refs_store_request_duration_seconds",
    "Duration of object store requests in seconds",
    labelnames=("operation", "kind"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

MAPPED_REQUESTS_TOTAL = Counter(
    "cluster_refs_mapped_requests_total",
    "Number of reconcile requests emitted by fan-out mappers",
    labelnames=("mapper",),
)

REQUEUE_PATCHES_TOTAL = Counter(
    "cluster_refs_requeue_patches_total",
    "Number of trigger-reconcile patches applied",
    labelnames=("kind", "result"),
)
