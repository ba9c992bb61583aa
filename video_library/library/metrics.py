"""Prometheus counters for catalog activity.

Exposed through the ``/metrics`` ASGI app mounted in ``video_library.main``.
"""

from prometheus_client import Counter

IMPORTS = Counter(
    "video_library_imports_total",
    "Import requests by outcome",
    ["outcome"],  # created | existing
)

USAGE_RECORDS = Counter(
    "video_library_usage_records_total",
    "Usage records appended by kind",
    ["kind"],  # course | preview
)

DELETIONS = Counter(
    "video_library_deletions_total",
    "Bulk delete decisions per entry",
    ["outcome"],  # deleted | in_use | not_found
)
