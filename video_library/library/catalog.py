"""Catalog store access: loading entries and editing their metadata."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update, delete, insert, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from video_library.library.errors import AssetNotFoundError, CatalogValidationError
from video_library.library.formatting import bounded_labels, truncate
from video_library.logging_config import logger
from video_library.models import VideoAsset, AssetCategory, AssetTag
from video_library.models.base import utcnow

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
MAX_CATEGORIES = 10
CATEGORY_MAX_LENGTH = 50
MAX_TAGS = 20
TAG_MAX_LENGTH = 30

BULK_ACTIONS = ("updateCategories", "updateTags")


@dataclass
class AssetChanges:
    """Metadata edits; ``None`` leaves a field untouched."""
    title: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = None


def with_relations(stmt):
    """Eager-load labels and usage records, refreshing already-loaded entries."""
    return stmt.options(
        selectinload(VideoAsset.category_rows),
        selectinload(VideoAsset.tag_rows),
        selectinload(VideoAsset.usage_records),
    ).execution_options(populate_existing=True)


def parse_asset_id(value) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise CatalogValidationError(f"Invalid video id: {value!r}")


def normalize_categories(values: Optional[Iterable[str]]) -> list[str]:
    return bounded_labels(values, MAX_CATEGORIES, CATEGORY_MAX_LENGTH)


def normalize_tags(values: Optional[Iterable[str]]) -> list[str]:
    return bounded_labels(values, MAX_TAGS, TAG_MAX_LENGTH)


async def get_asset(db: AsyncSession, asset_id) -> VideoAsset:
    """Load one entry with its labels and usage records."""
    asset_id = parse_asset_id(asset_id)
    result = await db.execute(with_relations(select(VideoAsset).where(VideoAsset.id == asset_id)))
    asset = result.scalar_one_or_none()
    if asset is None:
        raise AssetNotFoundError("Video not found")
    return asset


async def find_asset(db: AsyncSession, key: Optional[str] = None, url: Optional[str] = None) -> Optional[VideoAsset]:
    """Look an entry up by storage key, or by URL when no key is given."""
    if key:
        condition = VideoAsset.storage_key == key
    elif url:
        condition = VideoAsset.url == url
    else:
        raise CatalogValidationError("Either key or url parameter is required")

    result = await db.execute(with_relations(select(VideoAsset).where(condition)))
    return result.scalar_one_or_none()


async def replace_labels(
    db: AsyncSession,
    asset_id: UUID,
    categories: Optional[Sequence[str]] = None,
    tags: Optional[Sequence[str]] = None,
) -> None:
    """Replace the category and/or tag rows of one entry.

    Labels must already be normalized.
    """
    if categories is not None:
        await db.execute(delete(AssetCategory).where(AssetCategory.asset_id == asset_id))
        if categories:
            await db.execute(
                insert(AssetCategory.__table__),
                [{"asset_id": asset_id, "name": name, "position": i} for i, name in enumerate(categories)],
            )
    if tags is not None:
        await db.execute(delete(AssetTag).where(AssetTag.asset_id == asset_id))
        if tags:
            await db.execute(
                insert(AssetTag.__table__),
                [{"asset_id": asset_id, "name": name, "position": i} for i, name in enumerate(tags)],
            )


async def update_asset(db: AsyncSession, asset_id, changes: AssetChanges) -> VideoAsset:
    """Edit title, description, labels or visibility of one entry."""
    asset_id = parse_asset_id(asset_id)

    values = {}
    if changes.title is not None:
        title = truncate(changes.title, TITLE_MAX_LENGTH)
        if not title:
            raise CatalogValidationError("Title cannot be empty")
        values["title"] = title
    if changes.description is not None:
        values["description"] = truncate(changes.description, DESCRIPTION_MAX_LENGTH)
    if changes.is_public is not None:
        values["is_public"] = changes.is_public

    result = await db.execute(
        update(VideoAsset)
        .where(VideoAsset.id == asset_id)
        .values(updated_at=utcnow(), **values)
    )
    if result.rowcount == 0:
        raise AssetNotFoundError("Video not found")

    await replace_labels(
        db,
        asset_id,
        categories=normalize_categories(changes.categories) if changes.categories is not None else None,
        tags=normalize_tags(changes.tags) if changes.tags is not None else None,
    )

    fields = sorted(values)
    if changes.categories is not None:
        fields.append("categories")
    if changes.tags is not None:
        fields.append("tags")
    logger.info("Updated video metadata", video_id=str(asset_id), fields=fields)

    return await get_asset(db, asset_id)


async def bulk_update(db: AsyncSession, asset_ids: Iterable, action: str, values: list[str]) -> int:
    """Apply ``updateCategories`` or ``updateTags`` to many entries.

    Returns:
        Number of entries that exist and were modified
    """
    if action not in BULK_ACTIONS:
        raise CatalogValidationError("Invalid action")

    ids = [parse_asset_id(value) for value in asset_ids]
    if not ids:
        raise CatalogValidationError("Action and video IDs are required")

    result = await db.execute(select(VideoAsset.id).where(VideoAsset.id.in_(ids)))
    existing = list(result.scalars().all())

    if action == "updateCategories":
        labels = normalize_categories(values)
        for asset_id in existing:
            await replace_labels(db, asset_id, categories=labels)
    else:
        labels = normalize_tags(values)
        for asset_id in existing:
            await replace_labels(db, asset_id, tags=labels)

    if existing:
        await db.execute(update(VideoAsset).where(VideoAsset.id.in_(existing)).values(updated_at=utcnow()))

    logger.info("Bulk metadata update", action=action, requested=len(ids), modified=len(existing))
    return len(existing)


async def cataloged_keys(db: AsyncSession, keys: Iterable[str]) -> set[str]:
    """Subset of ``keys`` that already have a catalog entry."""
    keys = list(dict.fromkeys(keys))
    if not keys:
        return set()
    result = await db.execute(select(VideoAsset.storage_key).where(VideoAsset.storage_key.in_(keys)))
    return set(result.scalars().all())


def text_condition(text: str):
    """Case-insensitive substring match on title, description, file name or any tag."""
    return or_(
        VideoAsset.title.icontains(text, autoescape=True),
        VideoAsset.description.icontains(text, autoescape=True),
        VideoAsset.original_file_name.icontains(text, autoescape=True),
        VideoAsset.id.in_(
            select(AssetTag.asset_id).where(AssetTag.name.icontains(text, autoescape=True))
        ),
    )
