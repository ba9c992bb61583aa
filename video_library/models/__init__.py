"""SQLAlchemy ORM models for the video library."""

from video_library.models.base import Base
from video_library.models.asset import VideoAsset, AssetCategory, AssetTag
from video_library.models.usage import UsageRecord, UsageKind, PREVIEW_COURSE_ID

__all__ = [
    "Base",
    "VideoAsset",
    "AssetCategory",
    "AssetTag",
    "UsageRecord",
    "UsageKind",
    "PREVIEW_COURSE_ID",
]
