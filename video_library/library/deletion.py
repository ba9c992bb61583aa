"""Deletion guard: bulk delete that never removes an entry in use.

Each id is decided on its own with a conditional delete, so a usage record
appended concurrently either lands before the delete (and blocks it) or fails
because the entry is gone. Earlier deletions in a batch are kept when a later
entry is blocked; the result reports both.
"""

from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from sqlalchemy import select, delete, exists
from sqlalchemy.ext.asyncio import AsyncSession

from video_library.library.errors import CatalogValidationError
from video_library.library.metrics import DELETIONS
from video_library.logging_config import logger
from video_library.models import VideoAsset, AssetCategory, AssetTag, UsageRecord

ALL_DELETED = "all_deleted"
PARTIAL = "partial"
NONE_DELETABLE = "none_deletable"
NOT_FOUND = "not_found"


@dataclass
class BulkDeleteResult:
    deleted: list[str] = field(default_factory=list)
    in_use: list[dict] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)

    @property
    def outcome(self) -> str:
        if self.in_use and self.deleted:
            return PARTIAL
        if self.in_use:
            return NONE_DELETABLE
        if self.deleted:
            return ALL_DELETED
        return NOT_FOUND


def _parse_ids(asset_ids: Iterable) -> list[UUID]:
    """Parse and dedupe every id; any malformed id rejects the whole request."""
    ids = []
    malformed = []
    for value in asset_ids:
        try:
            asset_id = value if isinstance(value, UUID) else UUID(str(value))
        except (TypeError, ValueError):
            malformed.append(str(value))
            continue
        if asset_id not in ids:
            ids.append(asset_id)

    if malformed:
        logger.warning("Rejected bulk delete with malformed video ids", video_ids=malformed)
        raise CatalogValidationError(f"Invalid video IDs: {', '.join(malformed)}")
    return ids


async def _delete_if_unused(db: AsyncSession, asset_id: UUID) -> bool:
    result = await db.execute(
        delete(VideoAsset)
        .where(
            VideoAsset.id == asset_id,
            VideoAsset.usage_count == 0,
            ~exists().where(UsageRecord.asset_id == asset_id),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False

    await db.execute(delete(AssetCategory).where(AssetCategory.asset_id == asset_id))
    await db.execute(delete(AssetTag).where(AssetTag.asset_id == asset_id))
    return True


async def bulk_delete(db: AsyncSession, asset_ids: Iterable) -> BulkDeleteResult:
    """
    Delete every listed entry that has no usage records.

    Args:
        db: Session; the caller commits
        asset_ids: Entry ids

    Returns:
        Deleted ids, blocked entries (``{id, title, usageCount}``) and unknown ids

    Raises:
        CatalogValidationError: If no id was given or any id is malformed;
            nothing is deleted in that case
    """
    ids = _parse_ids(asset_ids)
    if not ids:
        raise CatalogValidationError("Video IDs array is required")

    result = BulkDeleteResult()
    for asset_id in ids:
        if await _delete_if_unused(db, asset_id):
            result.deleted.append(str(asset_id))
            DELETIONS.labels(outcome="deleted").inc()
            continue

        row = (
            await db.execute(
                select(VideoAsset.title, VideoAsset.usage_count).where(VideoAsset.id == asset_id)
            )
        ).one_or_none()
        if row is None:
            result.not_found.append(str(asset_id))
            DELETIONS.labels(outcome="not_found").inc()
        else:
            result.in_use.append({"id": str(asset_id), "title": row.title, "usageCount": row.usage_count})
            DELETIONS.labels(outcome="in_use").inc()

    logger.info(
        "Bulk delete completed",
        outcome=result.outcome,
        deleted=result.deleted_count,
        in_use=len(result.in_use),
        not_found=len(result.not_found),
    )
    return result
