"""Tests for the MinIO storage gateway."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from urllib3.exceptions import MaxRetryError

from video_library.config import settings
from video_library.library.errors import StorageUnavailableError
from video_library.storage import BlobDescriptor, StorageClient, is_video_key


def listed(name, size=10, day=1, is_dir=False, content_type=None):
    return SimpleNamespace(
        object_name=name,
        size=size,
        last_modified=datetime(2026, 1, day, tzinfo=timezone.utc),
        content_type=content_type,
        is_dir=is_dir,
    )


@pytest.fixture
def minio(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(StorageClient, "_instance", client)
    return client


@pytest.mark.parametrize(
    "key, expected",
    [
        ("courses/lessonVideos/a.mp4", True),
        ("courses/lessonVideos/A.MOV", True),
        ("courses/lessonVideos/", False),
        ("courses/lessonVideos/notes.txt", False),
        ("courses/lessonVideos/noext", False),
        ("", False),
    ],
)
def test_is_video_key(key, expected):
    assert is_video_key(key) is expected


def test_blob_file_name():
    assert BlobDescriptor(key="courses/lessonVideos/a.mp4", size=1).file_name == "a.mp4"


class TestListObjects:

    def test_keeps_videos_newest_first(self, minio):
        minio.list_objects.return_value = [
            listed("courses/lessonVideos/old.mp4", day=1),
            listed("courses/lessonVideos/", is_dir=True),
            listed("courses/lessonVideos/readme.txt", day=9),
            listed("courses/lessonVideos/new.webm", day=5, content_type="video/webm"),
        ]

        blobs = StorageClient.list_objects("courses/")

        assert [b.key for b in blobs] == ["courses/lessonVideos/new.webm", "courses/lessonVideos/old.mp4"]
        assert blobs[0].mime_type == "video/webm"
        minio.list_objects.assert_called_once_with(settings.storage_bucket_videos, prefix="courses/", recursive=True)

    def test_caps_listing(self, minio, monkeypatch):
        monkeypatch.setattr(settings, "storage_list_max_keys", 2)
        minio.list_objects.return_value = [listed(f"courses/v{i}.mp4", day=i + 1) for i in range(5)]

        blobs = StorageClient.list_objects("courses/")

        assert len(blobs) == 2

    def test_missing_size_defaults_to_zero(self, minio):
        minio.list_objects.return_value = [listed("courses/a.mp4", size=None)]

        [blob] = StorageClient.list_objects("courses/")

        assert blob.size == 0

    def test_transport_failure_is_retryable(self, minio):
        minio.list_objects.side_effect = MaxRetryError(None, "http://minio:9000")

        with pytest.raises(StorageUnavailableError) as excinfo:
            StorageClient.list_objects("courses/")

        assert excinfo.value.retryable is True
        assert excinfo.value.status_code == 503


class TestObjectUrl:

    def test_public_base_url(self, monkeypatch):
        monkeypatch.setattr(settings, "storage_public_base_url", "https://cdn.example.com/videos/")

        assert StorageClient.object_url("courses/a.mp4") == "https://cdn.example.com/videos/courses/a.mp4"

    def test_defaults_to_endpoint_and_bucket(self, monkeypatch):
        monkeypatch.setattr(settings, "storage_public_base_url", None)
        monkeypatch.setattr(settings, "minio_endpoint", "http://minio:9000")
        monkeypatch.setattr(settings, "minio_secure", False)

        assert StorageClient.object_url("courses/a.mp4") == (
            f"http://minio:9000/{settings.storage_bucket_videos}/courses/a.mp4"
        )
