"""Request/response models for the video library API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from video_library.library.formatting import format_duration, format_size
from video_library.models import VideoAsset, UsageKind, PREVIEW_COURSE_ID


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests
class VideoData(CamelModel):
    """Storage object being cataloged."""
    key: Optional[str] = Field(None, description="Storage key")
    url: Optional[str] = None
    size: Optional[int] = Field(None, ge=0, description="Size in bytes")
    duration: Optional[float] = Field(None, ge=0, description="Duration in seconds")
    width: Optional[int] = Field(None, ge=0)
    height: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    original_file_name: Optional[str] = None


class TechnicalMetadata(CamelModel):
    resolution: Optional[str] = Field(None, max_length=32)
    format: Optional[str] = Field(None, max_length=32)
    bitrate: Optional[int] = Field(None, ge=0)
    frame_rate: Optional[float] = Field(None, ge=0)


class VideoImportRequest(CamelModel):
    """Add a video to the library, or resolve to the existing entry for its key."""
    video: Optional[VideoData] = None
    title: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    original_file_name: Optional[str] = None
    mime_type: Optional[str] = None
    is_public: bool = True
    metadata: Optional[TechnicalMetadata] = None

    # Optional usage context
    course_id: Optional[str] = Field(None, max_length=64)
    course_title: Optional[str] = None
    module_id: Optional[str] = Field(None, max_length=64)
    chapter_id: Optional[str] = Field(None, max_length=64)
    lesson_id: Optional[str] = Field(None, max_length=64)


class VideoUpdateRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = None


class UsageTrackRequest(CamelModel):
    video_library_id: str
    type: Literal["course", "preview"] = "course"
    course_id: Optional[str] = Field(None, max_length=64)
    course_title: Optional[str] = None
    module_id: Optional[str] = Field(None, max_length=64)
    chapter_id: Optional[str] = Field(None, max_length=64)
    lesson_id: Optional[str] = Field(None, max_length=64)
    referrer: Optional[str] = None


class BulkDeleteRequest(CamelModel):
    video_ids: list[str] = Field(default_factory=list)


class BulkActionData(CamelModel):
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class BulkActionRequest(CamelModel):
    action: str
    video_ids: list[str] = Field(default_factory=list)
    data: Optional[BulkActionData] = None


class StorageImportRequest(CamelModel):
    key: str = Field(..., min_length=1, description="Storage key")
    file_name: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)
    folder: Optional[str] = None


class BatchImportRequest(CamelModel):
    prefix: Optional[str] = None


# Responses
class VideoFileOut(CamelModel):
    key: str
    url: str
    size: int
    type: str = "video"
    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    original_file_name: str
    mime_type: str


class CourseUsageOut(CamelModel):
    course_id: str
    course_title: str
    module_id: Optional[str] = None
    chapter_id: Optional[str] = None
    lesson_id: Optional[str] = None
    used_at: datetime


class PreviewUsageOut(CamelModel):
    course_id: Literal["preview"] = PREVIEW_COURSE_ID
    accessed_at: datetime
    referrer: Optional[str] = None


class VideoOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    video: VideoFileOut
    uploaded_by: Optional[str] = None
    upload_date: datetime
    categories: list[str]
    tags: list[str]
    usage_count: int
    courses: list[CourseUsageOut]
    previews: list[PreviewUsageOut]
    is_public: bool
    metadata: Optional[TechnicalMetadata] = None
    formatted_size: str
    formatted_duration: str

    @classmethod
    def from_asset(cls, asset: VideoAsset, **extra) -> "VideoOut":
        metadata = None
        if any(v is not None for v in (asset.resolution, asset.format, asset.bitrate, asset.frame_rate)):
            metadata = TechnicalMetadata(
                resolution=asset.resolution,
                format=asset.format,
                bitrate=asset.bitrate,
                frame_rate=asset.frame_rate,
            )

        return cls(
            id=str(asset.id),
            title=asset.title,
            description=asset.description,
            video=VideoFileOut(
                key=asset.storage_key,
                url=asset.url,
                size=asset.size_bytes,
                duration=asset.duration_s,
                width=asset.width,
                height=asset.height,
                original_file_name=asset.original_file_name,
                mime_type=asset.mime_type,
            ),
            uploaded_by=asset.uploaded_by,
            upload_date=asset.upload_date,
            categories=asset.categories,
            tags=asset.tags,
            usage_count=asset.usage_count,
            courses=[
                CourseUsageOut(
                    course_id=r.course_id,
                    course_title=r.course_title,
                    module_id=r.module_id,
                    chapter_id=r.chapter_id,
                    lesson_id=r.lesson_id,
                    used_at=r.used_at,
                )
                for r in asset.usage_records
                if r.kind == UsageKind.COURSE
            ],
            previews=[
                PreviewUsageOut(accessed_at=r.used_at, referrer=r.referrer)
                for r in asset.usage_records
                if r.kind == UsageKind.PREVIEW
            ],
            is_public=asset.is_public,
            metadata=metadata,
            formatted_size=format_size(asset.size_bytes),
            formatted_duration=format_duration(asset.duration_s),
            **extra,
        )


class RecentCourseUsageOut(CamelModel):
    course: str
    course_id: str
    used_at: Optional[str] = None


class RecentPreviewOut(CamelModel):
    accessed_at: Optional[str] = None
    referrer: Optional[str] = None


class UsageStatsOut(CamelModel):
    total_usage: int
    course_usage: int
    preview_usage: int
    unique_courses: int
    recent_usage: list[RecentCourseUsageOut]
    recent_previews: list[RecentPreviewOut]


class VideoDetailOut(VideoOut):
    usage_stats: UsageStatsOut


class ImportResponse(CamelModel):
    success: bool = True
    message: str
    video: VideoOut
    existing: bool


class PaginationOut(CamelModel):
    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool


class UsageSummaryOut(CamelModel):
    total_usage: int
    avg_usage: float


class FacetsOut(CamelModel):
    categories: list[str]
    total_videos: int
    total_size: int
    formatted_total_size: str
    usage_stats: UsageSummaryOut


class VideoListResponse(CamelModel):
    videos: list[VideoOut]
    pagination: PaginationOut
    filters: FacetsOut


class VideoLookupResponse(CamelModel):
    video: VideoOut


class UsageTrackResponse(CamelModel):
    success: bool = True
    message: str
    usage_count: int
    type: Literal["course", "preview"]
    duplicate: bool = False


class InUseVideoOut(CamelModel):
    id: str
    title: str
    usage_count: int


class BulkDeleteResponse(CamelModel):
    success: bool
    message: Optional[str] = None
    deleted_count: int
    videos_in_use: Optional[list[InUseVideoOut]] = None
    not_found: Optional[list[str]] = None
    error: Optional[str] = None


class BulkActionResponse(CamelModel):
    success: bool = True
    message: str
    modified_count: int


class StorageBlobOut(CamelModel):
    key: str
    file_name: str
    folder: str
    size: int
    formatted_size: str
    last_modified: Optional[datetime] = None
    mime_type: Optional[str] = None
    url: str
    is_in_library: bool


class StorageListResponse(CamelModel):
    success: bool = True
    videos: list[StorageBlobOut]
    total: int
    bucket: str
    prefix: str


class FailedImportOut(CamelModel):
    key: str
    error: str


class BatchImportResponse(CamelModel):
    success: bool
    message: str
    imported: list[str]
    existing: list[str]
    failed: list[FailedImportOut]


class ExportRowOut(CamelModel):
    title: str
    formatted_size: str
    formatted_duration: str
    usage_count: int
    categories: list[str]
    upload_date: datetime


class ExportResponse(CamelModel):
    videos: list[ExportRowOut]
    total: int
    exported_at: datetime
