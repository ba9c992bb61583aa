"""Video library admin routes."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from video_library.auth.middleware import AuthUser, require_admin
from video_library.config import settings
from video_library.db import get_db, get_session_factory
from video_library.library import catalog, deletion, export, importer, ledger, query, reconciliation
from video_library.library.errors import AssetNotFoundError
from video_library.library.formatting import format_size
from video_library.library.schemas import (
    BatchImportRequest,
    BatchImportResponse,
    BulkActionRequest,
    BulkActionResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    ExportResponse,
    ExportRowOut,
    FacetsOut,
    FailedImportOut,
    ImportResponse,
    InUseVideoOut,
    PaginationOut,
    StorageBlobOut,
    StorageImportRequest,
    StorageListResponse,
    UsageStatsOut,
    UsageSummaryOut,
    UsageTrackRequest,
    UsageTrackResponse,
    VideoDetailOut,
    VideoImportRequest,
    VideoListResponse,
    VideoLookupResponse,
    VideoOut,
    VideoUpdateRequest,
)
from video_library.logging_config import logger
from video_library.models.base import utcnow
from video_library.storage import BlobDescriptor, get_storage_gateway
from video_library.library.reconciliation import StorageGateway

router = APIRouter()


def _detail(asset) -> VideoDetailOut:
    stats = ledger.get_usage_stats(asset)
    return VideoDetailOut.from_asset(
        asset,
        usage_stats=UsageStatsOut(
            total_usage=stats.total_usage,
            course_usage=stats.course_usage,
            preview_usage=stats.preview_usage,
            unique_courses=stats.unique_courses,
            recent_usage=stats.recent_usage,
            recent_previews=stats.recent_previews,
        ),
    )


def _blob_out(blob: BlobDescriptor, gateway: StorageGateway, in_library: bool) -> StorageBlobOut:
    parts = blob.key.split("/")
    return StorageBlobOut(
        key=blob.key,
        file_name=blob.file_name,
        folder=parts[1] if len(parts) > 2 else "unknown",
        size=blob.size,
        formatted_size=format_size(blob.size),
        last_modified=blob.last_modified,
        mime_type=blob.mime_type,
        url=gateway.object_url(blob.key),
        is_in_library=in_library,
    )


@router.get("", response_model=VideoListResponse)
async def list_videos(
    page: int = Query(1, description="1-indexed page"),
    limit: int = Query(settings.library_default_page_size, description="Page size, clamped to [1, 100]"),
    search: str = Query("", description="Case-insensitive text filter"),
    categories: str = Query("", description="Comma-separated categories"),
    sort_by: str = Query(query.DEFAULT_SORT, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    mine_only: bool = Query(False, alias="mineOnly"),
    type: str = Query("all", description="all, lesson or preview"),
    duration_min: Optional[float] = Query(None, alias="durationMin", ge=0),
    duration_max: Optional[float] = Query(None, alias="durationMax", ge=0),
    size_min: Optional[int] = Query(None, alias="sizeMin", ge=0),
    size_max: Optional[int] = Query(None, alias="sizeMax", ge=0),
    uploaded_by: Optional[str] = Query(None, alias="uploadedBy"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> VideoListResponse:
    """
    Search the library.

    Returns the requested page plus catalog-wide facets (category list, totals
    and usage summary) that ignore the active filters.
    """
    filters = query.SearchFilters(
        text=search,
        categories=[c.strip() for c in categories.split(",") if c.strip()],
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        duration_min=duration_min,
        duration_max=duration_max,
        size_min=size_min,
        size_max=size_max,
        uploader_id=uploaded_by,
        date_from=date_from,
        date_to=date_to,
        mine_only=mine_only,
        type=type,
    )
    logger.debug("Searching video library", search=search, type=type, page=page, user_id=user.user_id)

    result = await query.search(db, filters, caller_id=user.user_id)
    stats = await query.facets(db)

    return VideoListResponse(
        videos=[VideoOut.from_asset(asset) for asset in result.videos],
        pagination=PaginationOut(
            current_page=result.page,
            total_pages=result.total_pages,
            total=result.total,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
        filters=FacetsOut(
            categories=stats.categories,
            total_videos=stats.total_videos,
            total_size=stats.total_size,
            formatted_total_size=format_size(stats.total_size),
            usage_stats=UsageSummaryOut(total_usage=stats.total_usage, avg_usage=stats.avg_usage),
        ),
    )


@router.post("", response_model=ImportResponse)
async def import_video(
    request: VideoImportRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ImportResponse:
    """
    Add a video to the library.

    If the storage key is already cataloged, the existing entry is returned
    with ``existing=true`` and any usage context is recorded against it.
    """
    outcome = await importer.import_video(db, request, uploader_id=user.user_id)

    return ImportResponse(
        message="Video already exists in library" if outcome.existing else "Video added to library successfully",
        video=VideoOut.from_asset(outcome.asset),
        existing=outcome.existing,
    )


@router.get("/lookup", response_model=VideoLookupResponse)
async def lookup_video(
    key: Optional[str] = Query(None, description="Storage key"),
    url: Optional[str] = Query(None, description="Object URL"),
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> VideoLookupResponse:
    """Find a library entry by storage key or URL."""
    asset = await catalog.find_asset(db, key=key, url=url)
    if asset is None:
        raise AssetNotFoundError("Video not found in library")
    return VideoLookupResponse(video=VideoOut.from_asset(asset))


@router.get("/export", response_model=ExportResponse)
async def export_videos(
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ExportResponse:
    """Flat snapshot of the library, newest first."""
    rows = await export.export_rows(db)
    logger.info("Exported video library", rows=len(rows), user_id=user.user_id)
    return ExportResponse(
        videos=[
            ExportRowOut(
                title=row.title,
                formatted_size=row.formatted_size,
                formatted_duration=row.formatted_duration,
                usage_count=row.usage_count,
                categories=row.categories,
                upload_date=row.upload_date,
            )
            for row in rows
        ],
        total=len(rows),
        exported_at=utcnow(),
    )


@router.post("/usage", response_model=UsageTrackResponse)
async def track_usage(
    request: UsageTrackRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UsageTrackResponse:
    """
    Record a course placement or a preview of a library video.

    A course placement that is already recorded for the same course slot is
    not recorded twice.
    """
    asset_id = catalog.parse_asset_id(request.video_library_id)

    if request.type == "preview" or ledger.is_preview_course(request.course_id):
        await ledger.add_preview_usage(db, asset_id, request.referrer)
        asset = await catalog.get_asset(db, asset_id)
        return UsageTrackResponse(
            message="Preview usage tracked successfully",
            usage_count=asset.usage_count,
            type="preview",
        )

    if not request.course_id or not request.course_title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="courseId and courseTitle are required for course usage tracking",
        )

    duplicate = await ledger.has_course_usage(
        db,
        asset_id,
        request.course_id,
        module_id=request.module_id,
        chapter_id=request.chapter_id,
        lesson_id=request.lesson_id,
    )
    if duplicate:
        logger.info("Usage already tracked, skipping duplicate", video_id=str(asset_id), course_id=request.course_id)
    else:
        await ledger.add_usage(
            db,
            asset_id,
            request.course_id,
            request.course_title,
            module_id=request.module_id,
            chapter_id=request.chapter_id,
            lesson_id=request.lesson_id,
        )

    asset = await catalog.get_asset(db, asset_id)
    return UsageTrackResponse(
        message="Course usage tracked successfully",
        usage_count=asset.usage_count,
        type="course",
        duplicate=duplicate,
    )


@router.delete("/bulk", response_model=BulkDeleteResponse, response_model_exclude_none=True)
async def bulk_delete_videos(
    request: BulkDeleteRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete library entries that are not used anywhere.

    Entries with usage records are reported in ``videosInUse`` and kept;
    unused entries in the same request are still deleted. Storage objects are
    never removed.
    """
    if not request.video_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Video IDs array is required",
        )

    result = await deletion.bulk_delete(db, request.video_ids)

    in_use = [
        InUseVideoOut(id=item["id"], title=item["title"], usage_count=item["usageCount"])
        for item in result.in_use
    ] or None
    not_found = result.not_found or None

    if result.outcome == deletion.ALL_DELETED:
        body = BulkDeleteResponse(
            success=True,
            message=f"Successfully deleted {result.deleted_count} videos",
            deleted_count=result.deleted_count,
            not_found=not_found,
        )
        status_code = status.HTTP_200_OK
    elif result.outcome == deletion.PARTIAL:
        body = BulkDeleteResponse(
            success=False,
            message=f"Deleted {result.deleted_count} videos; {len(result.in_use)} are in use",
            deleted_count=result.deleted_count,
            videos_in_use=in_use,
            not_found=not_found,
            error="Some videos are in use and cannot be deleted",
        )
        status_code = status.HTTP_200_OK
    elif result.outcome == deletion.NONE_DELETABLE:
        body = BulkDeleteResponse(
            success=False,
            deleted_count=0,
            videos_in_use=in_use,
            not_found=not_found,
            error="All selected videos are in use and cannot be deleted",
        )
        status_code = status.HTTP_409_CONFLICT
    else:
        body = BulkDeleteResponse(
            success=False,
            deleted_count=0,
            not_found=not_found,
            error="No videos found with the provided IDs",
        )
        status_code = status.HTTP_404_NOT_FOUND

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("/bulk", response_model=BulkActionResponse)
async def bulk_update_videos(
    request: BulkActionRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BulkActionResponse:
    """Replace categories (``updateCategories``) or tags (``updateTags``) on many videos."""
    if request.action == "updateCategories":
        values = request.data.categories if request.data else None
        missing = "Categories array is required"
    elif request.action == "updateTags":
        values = request.data.tags if request.data else None
        missing = "Tags array is required"
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")

    if values is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=missing)

    modified = await catalog.bulk_update(db, request.video_ids, request.action, values)
    return BulkActionResponse(message=f"Updated {modified} videos", modified_count=modified)


@router.get("/storage", response_model=StorageListResponse)
async def list_storage_videos(
    prefix: str = Query(settings.storage_default_prefix, description="Storage key prefix"),
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> StorageListResponse:
    """List video objects in storage, flagging the ones already in the library."""
    result = await reconciliation.reconcile(db, gateway, prefix)
    cataloged = {blob.key for blob in result.cataloged}
    blobs = result.cataloged + result.importable
    blobs.sort(key=lambda b: b.last_modified.timestamp() if b.last_modified else 0.0, reverse=True)

    return StorageListResponse(
        videos=[_blob_out(b, gateway, b.key in cataloged) for b in blobs],
        total=len(blobs),
        bucket=settings.storage_bucket_videos,
        prefix=prefix,
    )


@router.get("/storage/unimported", response_model=StorageListResponse)
async def list_unimported_videos(
    prefix: str = Query(settings.storage_default_prefix, description="Storage key prefix"),
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    gateway: StorageGateway = Depends(get_storage_gateway),
) -> StorageListResponse:
    """Video objects in storage that have no library entry yet."""
    importable = await reconciliation.find_importable(db, gateway, prefix)
    return StorageListResponse(
        videos=[_blob_out(b, gateway, False) for b in importable],
        total=len(importable),
        bucket=settings.storage_bucket_videos,
        prefix=prefix,
    )


@router.post("/storage/import", response_model=ImportResponse)
async def import_storage_video(
    request: StorageImportRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ImportResponse:
    """Catalog one storage object; returns the existing entry if it is already cataloged."""
    blob = BlobDescriptor(key=request.key, size=request.size or 0)
    outcome = await importer.import_blob(
        db,
        blob,
        uploader_id=user.user_id,
        folder=request.folder,
        file_name=request.file_name,
    )
    return ImportResponse(
        message="Video already imported" if outcome.existing else "Video imported successfully",
        video=VideoOut.from_asset(outcome.asset),
        existing=outcome.existing,
    )


@router.post("/storage/import-batch", response_model=BatchImportResponse)
async def import_storage_batch(
    request: BatchImportRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    gateway: StorageGateway = Depends(get_storage_gateway),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> BatchImportResponse:
    """
    Import every storage object under a prefix that is not cataloged yet.

    Items are committed one by one; failures are reported and can be retried
    by calling this endpoint again.
    """
    prefix = request.prefix or settings.storage_default_prefix
    importable = await reconciliation.find_importable(db, gateway, prefix)
    result = await importer.import_batch(session_factory, importable, uploader_id=user.user_id)

    return BatchImportResponse(
        success=not result.failed,
        message=(
            f"Imported {len(result.imported)} videos"
            + (f", {len(result.failed)} failed" if result.failed else "")
        ),
        imported=result.imported,
        existing=result.existing,
        failed=[FailedImportOut(key=item["key"], error=item["error"]) for item in result.failed],
    )


@router.get("/{video_id}", response_model=VideoDetailOut)
async def get_video(
    video_id: UUID,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> VideoDetailOut:
    """Get one library entry with its usage statistics."""
    asset = await catalog.get_asset(db, video_id)
    return _detail(asset)


@router.patch("/{video_id}", response_model=VideoDetailOut)
async def update_video(
    video_id: UUID,
    request: VideoUpdateRequest,
    user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> VideoDetailOut:
    """Edit title, description, categories, tags or visibility."""
    asset = await catalog.update_asset(
        db,
        video_id,
        catalog.AssetChanges(
            title=request.title,
            description=request.description,
            categories=request.categories,
            tags=request.tags,
            is_public=request.is_public,
        ),
    )
    return _detail(asset)
