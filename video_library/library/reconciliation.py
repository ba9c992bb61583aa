"""Reconciliation of storage listings against the catalog.

Read-only: nothing here writes to the catalog or to storage.
"""

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from video_library.library.catalog import cataloged_keys
from video_library.logging_config import logger
from video_library.storage import BlobDescriptor


class StorageGateway(Protocol):
    def list_objects(self, prefix: str) -> list[BlobDescriptor]: ...

    def object_url(self, object_key: str) -> str: ...


@dataclass
class ReconciliationResult:
    cataloged: list[BlobDescriptor] = field(default_factory=list)
    importable: list[BlobDescriptor] = field(default_factory=list)


def list_blobs(gateway: StorageGateway, prefix: str) -> list[BlobDescriptor]:
    return gateway.list_objects(prefix)


def diff(blobs: Iterable[BlobDescriptor], catalog_keys: Iterable[str]) -> ReconciliationResult:
    """Partition blobs into already cataloged and importable, keeping order."""
    known = set(catalog_keys)
    result = ReconciliationResult()
    for blob in blobs:
        if blob.key in known:
            result.cataloged.append(blob)
        else:
            result.importable.append(blob)
    return result


async def reconcile(db: AsyncSession, gateway: StorageGateway, prefix: str) -> ReconciliationResult:
    """List a prefix and split it against the catalog's keys."""
    blobs = list_blobs(gateway, prefix)
    result = diff(blobs, await cataloged_keys(db, (b.key for b in blobs)))

    logger.info(
        "Reconciled storage prefix",
        prefix=prefix,
        listed=len(blobs),
        cataloged=len(result.cataloged),
        importable=len(result.importable),
    )
    return result


async def find_importable(db: AsyncSession, gateway: StorageGateway, prefix: str) -> list[BlobDescriptor]:
    return (await reconcile(db, gateway, prefix)).importable
