"""Flat export snapshot of the catalog."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from video_library.config import settings
from video_library.library.formatting import format_duration, format_size
from video_library.models import VideoAsset


@dataclass
class ExportRow:
    title: str
    formatted_size: str
    formatted_duration: str
    usage_count: int
    categories: list[str]
    upload_date: datetime


async def export_rows(db: AsyncSession, limit: Optional[int] = None) -> list[ExportRow]:
    """Newest entries first, capped at ``export_max_rows``."""
    limit = limit or settings.export_max_rows
    result = await db.execute(
        select(VideoAsset)
        .options(selectinload(VideoAsset.category_rows))
        .order_by(VideoAsset.upload_date.desc(), VideoAsset.id)
        .limit(limit)
    )
    return [
        ExportRow(
            title=asset.title,
            formatted_size=format_size(asset.size_bytes),
            formatted_duration=format_duration(asset.duration_s),
            usage_count=asset.usage_count,
            categories=asset.categories,
            upload_date=asset.upload_date,
        )
        for asset in result.scalars().all()
    ]
