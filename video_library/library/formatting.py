"""Display helpers for sizes, durations and bounded text fields."""

from typing import Iterable, Optional

KB = 1024
MB = 1024 * KB
GB = 1024 * MB


def format_size(size_bytes: Optional[int]) -> str:
    """Human readable byte size, e.g. ``1.00 MB``."""
    size_bytes = size_bytes or 0
    if size_bytes >= GB:
        return f"{size_bytes / GB:.2f} GB"
    if size_bytes >= MB:
        return f"{size_bytes / MB:.2f} MB"
    if size_bytes >= KB:
        return f"{size_bytes / KB:.2f} KB"
    return f"{size_bytes} B"


def format_duration(seconds: Optional[float]) -> str:
    """``m:ss`` or ``h:mm:ss``; missing or non-positive durations render ``0:00``."""
    if not seconds or seconds <= 0:
        return "0:00"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    if value is None:
        return None
    return value.strip()[:max_length]


def bounded_labels(values: Optional[Iterable[str]], max_items: int, max_length: int) -> list[str]:
    """Normalize a label list into an ordered set.

    Blank entries are dropped, each label is cut to ``max_length`` and only the
    first ``max_items`` distinct labels are kept.
    """
    labels: list[str] = []
    for value in values or []:
        if value is None:
            continue
        label = str(value).strip()[:max_length]
        if label and label not in labels:
            labels.append(label)
        if len(labels) == max_items:
            break
    return labels
