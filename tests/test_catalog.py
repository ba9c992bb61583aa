"""Tests for catalog lookups and metadata edits."""

from uuid import uuid4

import pytest

from video_library.library import catalog, importer
from video_library.library.catalog import AssetChanges
from video_library.library.errors import AssetNotFoundError, CatalogValidationError

from tests.conftest import ADMIN_ID, make_request


async def new_asset(db, key="courses/lessonVideos/a.mp4", **kwargs):
    outcome = await importer.import_video(db, make_request(key, **kwargs), ADMIN_ID)
    await db.commit()
    return outcome.asset


class TestLookup:

    async def test_find_by_key_or_url(self, db):
        asset = await new_asset(db)

        assert (await catalog.find_asset(db, key=asset.storage_key)).id == asset.id
        assert (await catalog.find_asset(db, url=asset.url)).id == asset.id
        assert await catalog.find_asset(db, key="courses/missing.mp4") is None

    async def test_find_requires_key_or_url(self, db):
        with pytest.raises(CatalogValidationError):
            await catalog.find_asset(db)

    async def test_get_unknown_or_malformed_id(self, db):
        with pytest.raises(AssetNotFoundError):
            await catalog.get_asset(db, uuid4())
        with pytest.raises(CatalogValidationError):
            await catalog.get_asset(db, "not-a-uuid")

    async def test_cataloged_keys(self, db):
        asset = await new_asset(db)

        assert await catalog.cataloged_keys(db, [asset.storage_key, "courses/x.mp4"]) == {asset.storage_key}
        assert await catalog.cataloged_keys(db, []) == set()


class TestUpdate:

    async def test_edits_fields_and_replaces_labels(self, db):
        asset = await new_asset(db, categories=["lesson"], tags=["old"])

        updated = await catalog.update_asset(
            db,
            asset.id,
            AssetChanges(title="  Renamed ", categories=["preview", "preview"], tags=[], is_public=False),
        )
        await db.commit()

        assert updated.title == "Renamed"
        assert updated.categories == ["preview"]
        assert updated.tags == []
        assert updated.is_public is False
        assert updated.storage_key == asset.storage_key

    async def test_unset_fields_are_untouched(self, db):
        asset = await new_asset(db, categories=["lesson"], tags=["keep"], description="Original")

        updated = await catalog.update_asset(db, asset.id, AssetChanges(title="New"))

        assert updated.description == "Original"
        assert updated.categories == ["lesson"]
        assert updated.tags == ["keep"]

    async def test_blank_title_rejected(self, db):
        asset = await new_asset(db)

        with pytest.raises(CatalogValidationError):
            await catalog.update_asset(db, asset.id, AssetChanges(title="   "))

    async def test_unknown_entry(self, db):
        with pytest.raises(AssetNotFoundError):
            await catalog.update_asset(db, uuid4(), AssetChanges(title="x"))


class TestBulkUpdate:

    async def test_replaces_labels_on_existing_entries(self, db):
        a = await new_asset(db, "courses/a.mp4", tags=["one"])
        b = await new_asset(db, "courses/b.mp4")

        modified = await catalog.bulk_update(db, [str(a.id), str(b.id), str(uuid4())], "updateTags", ["x", "y"])
        await db.commit()

        assert modified == 2
        assert (await catalog.get_asset(db, a.id)).tags == ["x", "y"]
        assert (await catalog.get_asset(db, b.id)).tags == ["x", "y"]

    async def test_categories_action(self, db):
        a = await new_asset(db, categories=["lesson"])

        await catalog.bulk_update(db, [a.id], "updateCategories", ["preview"])

        assert (await catalog.get_asset(db, a.id)).categories == ["preview"]

    async def test_invalid_action(self, db):
        with pytest.raises(CatalogValidationError):
            await catalog.bulk_update(db, [uuid4()], "deleteEverything", [])

    async def test_requires_ids(self, db):
        with pytest.raises(CatalogValidationError):
            await catalog.bulk_update(db, [], "updateTags", ["x"])
