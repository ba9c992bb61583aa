"""Query engine: filtered, sorted, paginated search plus catalog facets."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from video_library.config import settings
from video_library.library.catalog import text_condition, with_relations
from video_library.models import VideoAsset, AssetCategory

TYPE_CATEGORIES = {
    "lesson": ("lessonVideo", "lesson"),
    "preview": ("previewVideo", "preview"),
}

SORT_COLUMNS = {
    "uploadDate": VideoAsset.upload_date,
    "title": VideoAsset.title,
    "size": VideoAsset.size_bytes,
    "duration": VideoAsset.duration_s,
    "usageCount": VideoAsset.usage_count,
    "usage": VideoAsset.usage_count,
}
DEFAULT_SORT = "uploadDate"


@dataclass
class SearchFilters:
    text: str = ""
    categories: list[str] = field(default_factory=list)
    sort_by: str = DEFAULT_SORT
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20
    duration_min: Optional[float] = None
    duration_max: Optional[float] = None
    size_min: Optional[int] = None
    size_max: Optional[int] = None
    uploader_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    mine_only: bool = False
    type: str = "all"


@dataclass
class SearchPage:
    videos: list[VideoAsset]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


@dataclass
class CatalogFacets:
    categories: list[str]
    total_videos: int
    total_size: int
    total_usage: int
    avg_usage: float


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.library_default_page_size
    return max(1, min(settings.library_max_page_size, limit))


def _conditions(filters: SearchFilters, caller_id: Optional[str]) -> list:
    conditions = []

    text = (filters.text or "").strip()
    if text:
        conditions.append(text_condition(text))

    # A coarse type replaces any explicit category list
    categories = TYPE_CATEGORIES.get(filters.type) or [c for c in filters.categories if c]
    if categories:
        conditions.append(
            VideoAsset.id.in_(select(AssetCategory.asset_id).where(AssetCategory.name.in_(categories)))
        )

    if filters.duration_min is not None:
        conditions.append(VideoAsset.duration_s >= filters.duration_min)
    if filters.duration_max is not None:
        conditions.append(VideoAsset.duration_s <= filters.duration_max)
    if filters.size_min is not None:
        conditions.append(VideoAsset.size_bytes >= filters.size_min)
    if filters.size_max is not None:
        conditions.append(VideoAsset.size_bytes <= filters.size_max)
    if filters.date_from is not None:
        conditions.append(VideoAsset.upload_date >= filters.date_from)
    if filters.date_to is not None:
        conditions.append(VideoAsset.upload_date <= filters.date_to)

    uploader = caller_id if filters.mine_only else filters.uploader_id
    if uploader:
        conditions.append(VideoAsset.uploaded_by == uploader)

    return conditions


def _order_by(filters: SearchFilters) -> list:
    column = SORT_COLUMNS.get(filters.sort_by)
    if column is None:
        return [VideoAsset.upload_date.desc(), VideoAsset.id]
    direction = column.asc() if filters.sort_order == "asc" else column.desc()
    return [direction, VideoAsset.id]


async def search(db: AsyncSession, filters: SearchFilters, caller_id: Optional[str] = None) -> SearchPage:
    """Run a filtered, paginated search over the catalog."""
    page = max(1, filters.page or 1)
    limit = clamp_limit(filters.limit)
    conditions = _conditions(filters, caller_id)

    total = (
        await db.execute(select(func.count(VideoAsset.id)).where(*conditions))
    ).scalar() or 0

    stmt = with_relations(
        select(VideoAsset)
        .where(*conditions)
        .order_by(*_order_by(filters))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    videos = list((await db.execute(stmt)).scalars().all())

    return SearchPage(videos=videos, total=total, page=page, limit=limit)


async def facets(db: AsyncSession) -> CatalogFacets:
    """Catalog-wide aggregates, independent of any search filter."""
    categories = (
        await db.execute(select(AssetCategory.name).distinct().order_by(AssetCategory.name))
    ).scalars().all()

    row = (
        await db.execute(
            select(
                func.count(VideoAsset.id),
                func.coalesce(func.sum(VideoAsset.size_bytes), 0),
                func.coalesce(func.sum(VideoAsset.usage_count), 0),
                func.avg(VideoAsset.usage_count),
            )
        )
    ).one()
    total_videos, total_size, total_usage, avg_usage = row

    return CatalogFacets(
        categories=[c for c in categories if c],
        total_videos=total_videos or 0,
        total_size=int(total_size or 0),
        total_usage=int(total_usage or 0),
        avg_usage=round(float(avg_usage or 0), 1),
    )
