"""Object storage gateway for MinIO/S3.

The video library only ever reads from the bucket: it lists objects to find
videos that are not cataloged yet and builds public URLs for them. Blobs are
never written, moved or removed from here.
"""

from dataclasses import dataclass
from datetime import datetime
from itertools import islice
from typing import Optional
from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as TransportError

from video_library.config import settings
from video_library.library.errors import StorageUnavailableError
from video_library.logging_config import logger


@dataclass(frozen=True)
class BlobDescriptor:
    """A raw object listed from storage."""
    key: str
    size: int
    last_modified: Optional[datetime] = None
    mime_type: Optional[str] = None

    @property
    def file_name(self) -> str:
        return self.key.rsplit("/", 1)[-1]


def is_video_key(key: str) -> bool:
    """True for object keys that look like a video file, not a folder marker."""
    if not key or key.endswith("/") or "." not in key:
        return False
    return key.rsplit(".", 1)[-1].lower() in settings.video_extensions


class StorageClient:
    """Singleton storage client for MinIO/S3."""

    _instance: Optional[Minio] = None

    @classmethod
    def get_client(cls) -> Minio:
        """Get or create MinIO client instance."""
        if cls._instance is None:
            # Parse endpoint to remove http:// or https://
            endpoint = settings.minio_endpoint.replace("http://", "").replace("https://", "")

            cls._instance = Minio(
                endpoint,
                access_key=settings.minio_access_key,
                secret_key=settings.minio_secret_key,
                secure=settings.minio_secure,
                region=settings.minio_region,
            )

            logger.info("MinIO client initialized", endpoint=endpoint)

        return cls._instance

    @classmethod
    def list_objects(cls, prefix: str) -> list[BlobDescriptor]:
        """
        List video objects under a key prefix.

        Args:
            prefix: Key prefix (e.g. "courses/")

        Returns:
            Video blobs, newest first, capped at storage_list_max_keys

        Raises:
            StorageUnavailableError: If the bucket cannot be listed
        """
        client = cls.get_client()
        bucket = settings.storage_bucket_videos

        try:
            objects = client.list_objects(bucket, prefix=prefix, recursive=True)
            blobs = [
                BlobDescriptor(
                    key=obj.object_name,
                    size=obj.size or 0,
                    last_modified=obj.last_modified,
                    mime_type=obj.content_type,
                )
                for obj in islice(
                    (o for o in objects if not o.is_dir and is_video_key(o.object_name)),
                    settings.storage_list_max_keys,
                )
            ]
        except (S3Error, TransportError) as e:
            logger.error(
                "Failed to list storage objects",
                bucket=bucket,
                prefix=prefix,
                error=str(e)
            )
            raise StorageUnavailableError(f"Failed to list storage objects: {e}") from e

        blobs.sort(key=lambda b: b.last_modified.timestamp() if b.last_modified else 0.0, reverse=True)

        logger.debug(
            "Listed storage objects",
            bucket=bucket,
            prefix=prefix,
            count=len(blobs)
        )
        return blobs

    @classmethod
    def object_url(cls, object_key: str) -> str:
        """Public URL of an object in the videos bucket."""
        base = settings.storage_public_base_url
        if not base:
            scheme = "https" if settings.minio_secure else "http"
            endpoint = settings.minio_endpoint.replace("http://", "").replace("https://", "")
            base = f"{scheme}://{endpoint}/{settings.storage_bucket_videos}"
        return f"{base.rstrip('/')}/{object_key}"


# Convenience function
def get_storage_gateway() -> type[StorageClient]:
    """Get storage gateway (for dependency injection)."""
    return StorageClient
