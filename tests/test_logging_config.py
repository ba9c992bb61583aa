"""Tests for the structlog processors."""

from video_library import __version__
from video_library.logging_config import (
    REDACTED,
    SERVICE_NAME,
    add_service_context,
    redact_sensitive_fields,
)


def test_service_context_is_added():
    event = add_service_context(None, "info", {"event": "Created video library entry"})

    assert event["service"] == SERVICE_NAME
    assert event["version"] == __version__


def test_service_context_keeps_explicit_values():
    event = add_service_context(None, "info", {"event": "x", "service": "batch-import"})

    assert event["service"] == "batch-import"


def test_credentials_are_masked_at_any_depth():
    event = redact_sensitive_fields(
        None,
        "warning",
        {
            "event": "Invalid token",
            "Authorization": "Bearer abc.def.ghi",
            "request": {"headers": {"authorization": "Bearer abc"}, "path": "/video-library"},
            "attempts": [{"token": "abc"}, "plain"],
            "video_id": "123",
        },
    )

    assert event["Authorization"] == REDACTED
    assert event["request"] == {"headers": {"authorization": REDACTED}, "path": "/video-library"}
    assert event["attempts"] == [{"token": REDACTED}, "plain"]
    assert event["event"] == "Invalid token"
    assert event["video_id"] == "123"
