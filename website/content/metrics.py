"""Prometheus metrics for the content sync engine."""

from prometheus_client import Counter, Gauge

# Ingestion metrics
CONTENT_INGESTIONS = Counter(
    "website_content_ingestions_total",
    "Total number of file ingestions",
    ["kind", "outcome"],  # created, updated, unchanged, failed
)

CONTENT_DELETIONS = Counter(
    "website_content_deletions_total",
    "Total number of records deleted because their file disappeared",
    ["kind"],
)

# Watch metrics
WATCH_OVERFLOWS = Counter(
    "website_watch_overflows_total",
    "Total number of watch channel overflows",
    ["kind"],
)

WATCH_STATE = Gauge(
    "website_watch_state",
    "Current watch state per kind (1 for the active state)",
    ["kind", "state"],
)

RECONCILE_CYCLES = Counter(
    "website_reconcile_cycles_total",
    "Total number of reconciliation cycles run",
    ["kind", "mode"],  # full, incremental
)

# Cache metrics
PAYLOAD_EVICTIONS = Counter(
    "website_payload_evictions_total",
    "Total number of cached payloads cleared by the evictor",
)

PAYLOAD_RENDERS = Counter(
    "website_payload_renders_total",
    "Total number of blog payloads read from disk and rendered",
)

CACHED_RECORDS = Gauge(
    "website_cached_records",
    "Number of records held in the content cache",
    ["kind"],
)
