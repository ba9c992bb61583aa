"""Usage ledger: append-only usage records and the derived usage count.

Every append inserts one record and bumps ``video_assets.usage_count`` with a
single ``UPDATE ... SET usage_count = usage_count + 1`` in the same
transaction, so lesson edits that reference the same asset concurrently never
lose an increment and the count always equals the number of records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, exists
from sqlalchemy.ext.asyncio import AsyncSession

from video_library.config import settings
from video_library.library.catalog import parse_asset_id
from video_library.library.errors import AssetNotFoundError, CatalogValidationError
from video_library.library.metrics import USAGE_RECORDS
from video_library.logging_config import logger
from video_library.models import VideoAsset, UsageRecord, UsageKind, PREVIEW_COURSE_ID
from video_library.models.base import utcnow

DEFAULT_PREVIEW_REFERRER = "course_creator"


@dataclass
class UsageStats:
    """Read-only summary of an entry's usage records."""
    total_usage: int
    course_usage: int
    preview_usage: int
    unique_courses: int
    recent_usage: list[dict] = field(default_factory=list)
    recent_previews: list[dict] = field(default_factory=list)


def is_preview_course(course_id: Optional[str]) -> bool:
    return course_id is not None and str(course_id).strip().lower() == PREVIEW_COURSE_ID


async def _append(db: AsyncSession, asset_id, record: UsageRecord) -> None:
    asset_id = parse_asset_id(asset_id)

    result = await db.execute(
        update(VideoAsset)
        .where(VideoAsset.id == asset_id)
        .values(usage_count=VideoAsset.usage_count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise AssetNotFoundError("Video not found")

    record.asset_id = asset_id
    db.add(record)
    await db.flush()

    USAGE_RECORDS.labels(kind=record.kind.value).inc()


async def add_preview_usage(db: AsyncSession, asset_id, referrer: Optional[str] = None) -> UsageRecord:
    """Record that an asset was previewed (e.g. in the course editor)."""
    record = UsageRecord(
        kind=UsageKind.PREVIEW,
        referrer=(referrer or DEFAULT_PREVIEW_REFERRER)[:255],
        used_at=utcnow(),
    )
    await _append(db, asset_id, record)

    logger.info("Added preview usage", video_id=str(asset_id), referrer=record.referrer)
    return record


async def add_usage(
    db: AsyncSession,
    asset_id,
    course_id: str,
    course_title: Optional[str],
    module_id: Optional[str] = None,
    chapter_id: Optional[str] = None,
    lesson_id: Optional[str] = None,
) -> UsageRecord:
    """Record that a course lesson uses an asset.

    A course id of ``"preview"`` is not a course: it is recorded as a preview
    usage instead.
    """
    if is_preview_course(course_id):
        return await add_preview_usage(db, asset_id)

    if not course_id or not str(course_id).strip():
        raise CatalogValidationError("courseId is required for course usage")
    if not course_title or not course_title.strip():
        raise CatalogValidationError("courseTitle is required for course usage")

    record = UsageRecord(
        kind=UsageKind.COURSE,
        course_id=str(course_id).strip(),
        course_title=course_title.strip()[:200],
        module_id=module_id,
        chapter_id=chapter_id,
        lesson_id=lesson_id,
        used_at=utcnow(),
    )
    await _append(db, asset_id, record)

    logger.info(
        "Added course usage",
        video_id=str(asset_id),
        course_id=record.course_id,
        lesson_id=lesson_id,
    )
    return record


async def has_course_usage(
    db: AsyncSession,
    asset_id,
    course_id: str,
    module_id: Optional[str] = None,
    chapter_id: Optional[str] = None,
    lesson_id: Optional[str] = None,
) -> bool:
    """Whether the asset is already recorded for this course slot.

    Unspecified module/chapter/lesson ids match any value.
    """
    conditions = [
        UsageRecord.asset_id == parse_asset_id(asset_id),
        UsageRecord.kind == UsageKind.COURSE,
        UsageRecord.course_id == str(course_id),
    ]
    if module_id:
        conditions.append(UsageRecord.module_id == module_id)
    if chapter_id:
        conditions.append(UsageRecord.chapter_id == chapter_id)
    if lesson_id:
        conditions.append(UsageRecord.lesson_id == lesson_id)

    result = await db.execute(select(exists().where(*conditions)))
    return bool(result.scalar())


def _as_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def get_usage_stats(asset: VideoAsset, recent: Optional[int] = None) -> UsageStats:
    """Summarize usage of a loaded entry without touching the database."""
    recent = settings.usage_recent_limit if recent is None else recent

    courses = [r for r in asset.usage_records if r.kind == UsageKind.COURSE]
    previews = [r for r in asset.usage_records if r.kind == UsageKind.PREVIEW]

    return UsageStats(
        total_usage=asset.usage_count,
        course_usage=len(courses),
        preview_usage=len(previews),
        unique_courses=len({r.course_id for r in courses}),
        recent_usage=[
            {"course": r.course_title, "courseId": r.course_id, "usedAt": _as_iso(r.used_at)}
            for r in (courses[-recent:] if recent > 0 else [])
        ],
        recent_previews=[
            {"accessedAt": _as_iso(r.used_at), "referrer": r.referrer}
            for r in (previews[-recent:] if recent > 0 else [])
        ],
    )
