"""Import pipeline: catalog storage objects, deduplicated by storage key.

Importing a key that is already cataloged is not an error. The existing entry
is returned (``existing=True``) and the optional usage context is still
recorded against it, so callers can import the same object from many lessons
without tracking whether it was seen before.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID, uuid4

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from video_library.library import ledger
from video_library.library.catalog import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    find_asset,
    get_asset,
    normalize_categories,
    normalize_tags,
    replace_labels,
)
from video_library.library.errors import CatalogError, CatalogValidationError, ImportConflictError
from video_library.library.formatting import truncate
from video_library.library.metrics import IMPORTS
from video_library.library.schemas import VideoData, VideoImportRequest
from video_library.logging_config import logger
from video_library.models import VideoAsset
from video_library.models.base import utcnow
from video_library.storage import BlobDescriptor, StorageClient

MIME_TYPES = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "flv": "video/x-flv",
    "wmv": "video/x-ms-wmv",
    "m4v": "video/x-m4v",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
}
DEFAULT_MIME_TYPE = "video/mp4"
STORAGE_IMPORT_TAG = "storage-import"
UNCATEGORIZED = "uncategorized"
IMPORT_ATTEMPTS = 2

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class ImportOutcome:
    asset: VideoAsset
    existing: bool


@dataclass
class BatchImportResult:
    imported: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)


def mime_type_for(file_name: str) -> str:
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def file_name_from_key(key: str) -> str:
    return key.rstrip("/").rsplit("/", 1)[-1] or "unknown"


def title_from_file_name(file_name: str) -> str:
    """``intro_to-draping.mp4`` -> ``intro to draping``."""
    stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    return stem.replace("_", " ").replace("-", " ").strip() or file_name


def folder_from_key(key: str) -> str:
    """Second path segment, e.g. ``courses/lessonVideos/a.mp4`` -> ``lessonVideos``."""
    parts = key.split("/")
    return parts[1] if len(parts) > 2 and parts[1] else UNCATEGORIZED


def _validate(request: VideoImportRequest) -> VideoData:
    video = request.video
    if video is None or not video.key or not video.url or video.size is None:
        raise CatalogValidationError("Video data is required (key, url, and size)")
    if not request.title or not request.title.strip():
        raise CatalogValidationError("Title is required")
    if request.course_id and not ledger.is_preview_course(request.course_id):
        if not request.course_title or not request.course_title.strip():
            raise CatalogValidationError("courseTitle is required when courseId is given")
    return video


def _has_usage_context(request: VideoImportRequest) -> bool:
    return bool(request.course_id)


async def _insert_if_absent(db: AsyncSession, values: dict) -> bool:
    """Atomic create-if-absent on the unique storage key.

    Returns:
        True if the row was inserted, False if the key already existed
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _DIALECT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Unsupported database dialect for import: {dialect}")

    stmt = (
        insert(VideoAsset.__table__)
        .values(**values)
        .on_conflict_do_nothing(index_elements=[VideoAsset.__table__.c.storage_key])
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def _create_or_resolve(db: AsyncSession, values: dict) -> tuple[bool, UUID]:
    """Insert the entry, or resolve the id of the one that owns its key.

    A conflicting row can be deleted between the insert and the lookup; the
    insert is then tried once more.

    Raises:
        ImportConflictError: If the key is still unresolved after the retry
    """
    key = values["storage_key"]
    for _ in range(IMPORT_ATTEMPTS):
        if await _insert_if_absent(db, values):
            return True, values["id"]
        existing = await find_asset(db, key=key)
        if existing is not None:
            return False, existing.id
        logger.warning("Cataloged key disappeared during import", key=key)

    raise ImportConflictError(f"Video {key} changed while importing, please retry")


async def import_video(db: AsyncSession, request: VideoImportRequest, uploader_id: Optional[str]) -> ImportOutcome:
    """
    Catalog a storage object, or resolve to the entry that already catalogs it.

    Args:
        db: Session; the caller commits
        request: Video data, descriptive fields and optional usage context
        uploader_id: Caller's user id, stored as a weak reference

    Returns:
        The entry (with labels and usage loaded) and whether it already existed

    Raises:
        CatalogValidationError: If required fields are missing (nothing is written)
        ImportConflictError: If the key kept appearing and disappearing during the import
    """
    video = _validate(request)

    original_file_name = (
        request.original_file_name or video.original_file_name or file_name_from_key(video.key)
    )[:255]
    now = utcnow()
    metadata = request.metadata

    values = {
        "id": uuid4(),
        "storage_key": video.key,
        "url": video.url,
        "size_bytes": video.size,
        "duration_s": video.duration,
        "width": video.width,
        "height": video.height,
        "original_file_name": original_file_name,
        "mime_type": request.mime_type or video.mime_type or mime_type_for(original_file_name),
        "title": truncate(request.title, TITLE_MAX_LENGTH),
        "description": truncate(request.description, DESCRIPTION_MAX_LENGTH),
        "uploaded_by": uploader_id,
        "upload_date": now,
        "usage_count": 0,
        "is_public": request.is_public,
        "resolution": metadata.resolution if metadata else None,
        "format": metadata.format if metadata else None,
        "bitrate": metadata.bitrate if metadata else None,
        "frame_rate": metadata.frame_rate if metadata else None,
        "created_at": now,
        "updated_at": now,
    }

    inserted, asset_id = await _create_or_resolve(db, values)

    if inserted:
        await replace_labels(
            db,
            asset_id,
            categories=normalize_categories(request.categories),
            tags=normalize_tags(request.tags),
        )
        logger.info("Created video library entry", video_id=str(asset_id), key=video.key)
    else:
        logger.info("Video already exists in library", video_id=str(asset_id), key=video.key)

    if _has_usage_context(request):
        await ledger.add_usage(
            db,
            asset_id,
            request.course_id,
            request.course_title,
            module_id=request.module_id,
            chapter_id=request.chapter_id,
            lesson_id=request.lesson_id,
        )

    IMPORTS.labels(outcome="created" if inserted else "existing").inc()
    return ImportOutcome(asset=await get_asset(db, asset_id), existing=not inserted)


def request_for_blob(blob: BlobDescriptor, folder: Optional[str] = None, file_name: Optional[str] = None) -> VideoImportRequest:
    """Describe a raw storage object the way an admin import would."""
    file_name = file_name or blob.file_name
    folder = folder or folder_from_key(blob.key)
    return VideoImportRequest(
        video=VideoData(
            key=blob.key,
            url=StorageClient.object_url(blob.key),
            size=blob.size,
            mime_type=blob.mime_type,
            original_file_name=file_name,
        ),
        title=title_from_file_name(file_name),
        description=f"Imported from storage: {folder}",
        categories=[folder or UNCATEGORIZED],
        tags=[STORAGE_IMPORT_TAG],
    )


async def import_blob(
    db: AsyncSession,
    blob: BlobDescriptor,
    uploader_id: Optional[str],
    folder: Optional[str] = None,
    file_name: Optional[str] = None,
) -> ImportOutcome:
    """Import one listed storage object."""
    return await import_video(db, request_for_blob(blob, folder=folder, file_name=file_name), uploader_id)


async def import_batch(
    session_factory: async_sessionmaker[AsyncSession],
    blobs: Iterable[BlobDescriptor],
    uploader_id: Optional[str],
) -> BatchImportResult:
    """Import many objects, one transaction each.

    A failing item is logged and reported; it neither stops the batch nor
    undoes items already committed. Re-running the batch is safe because every
    item is individually idempotent.
    """
    result = BatchImportResult()

    for blob in blobs:
        try:
            async with session_factory() as session:
                async with session.begin():
                    outcome = await import_blob(session, blob, uploader_id)
        except (CatalogError, SQLAlchemyError) as e:
            logger.warning("Failed to import storage object", key=blob.key, error=str(e))
            result.failed.append({"key": blob.key, "error": str(e)})
            continue

        if outcome.existing:
            result.existing.append(blob.key)
        else:
            result.imported.append(blob.key)

    logger.info(
        "Batch import finished",
        imported=len(result.imported),
        existing=len(result.existing),
        failed=len(result.failed),
    )
    return result
