"""Tests for search, pagination, sorting and facets."""

import warnings

import pytest
from sqlalchemy.exc import SAWarning

from video_library.library import importer, ledger, query
from video_library.library.query import SearchFilters

from tests.conftest import ADMIN_ID, make_request


async def add(db, key, title, uploader=ADMIN_ID, **kwargs):
    outcome = await importer.import_video(db, make_request(key, title=title, **kwargs), uploader)
    return outcome.asset


@pytest.fixture
async def library(db):
    """A small catalog with lesson and preview videos."""
    draping = await add(
        db,
        "courses/lessonVideos/draping.mp4",
        "Intro to Draping",
        categories=["lesson"],
        tags=["fabric"],
        size=3000,
        duration=120,
    )
    summer = await add(
        db,
        "courses/previewVideos/summer.mp4",
        "Summer Preview",
        categories=["preview"],
        size=1000,
        duration=30,
    )
    hemming = await add(
        db,
        "courses/lessonVideos/hem_basics.mp4",
        "Hemming",
        description="Blind stitch walkthrough",
        categories=["lesson", "advanced"],
        size=2000,
        duration=600,
        uploader="someone-else",
    )
    await ledger.add_usage(db, hemming.id, "C1", "Sewing 101")
    await ledger.add_usage(db, hemming.id, "C2", "Sewing 102")
    await ledger.add_preview_usage(db, draping.id)
    await db.commit()
    return {"draping": draping, "summer": summer, "hemming": hemming}


def titles(page):
    return [asset.title for asset in page.videos]


class TestTextSearch:

    async def test_matches_title_case_insensitively(self, db, library):
        page = await query.search(db, SearchFilters(text="draPING"))
        assert titles(page) == ["Intro to Draping"]

    async def test_matches_description_file_name_and_tags(self, db, library):
        assert titles(await query.search(db, SearchFilters(text="blind stitch"))) == ["Hemming"]
        assert titles(await query.search(db, SearchFilters(text="hem_basics"))) == ["Hemming"]
        assert titles(await query.search(db, SearchFilters(text="FABRIC"))) == ["Intro to Draping"]

    async def test_like_wildcards_are_literal(self, db, library):
        page = await query.search(db, SearchFilters(text="%"))
        assert page.total == 0


class TestFilters:

    async def test_categories_match_any(self, db, library):
        page = await query.search(db, SearchFilters(categories=["advanced", "preview"], sort_by="title", sort_order="asc"))
        assert titles(page) == ["Hemming", "Summer Preview"]

    @pytest.mark.parametrize(
        "type_, expected",
        [
            ("lesson", ["Hemming", "Intro to Draping"]),
            ("preview", ["Summer Preview"]),
            ("all", ["Hemming", "Intro to Draping", "Summer Preview"]),
        ],
    )
    async def test_type_selects_category_aliases(self, db, library, type_, expected):
        page = await query.search(db, SearchFilters(type=type_, sort_by="title", sort_order="asc"))
        assert titles(page) == expected

    async def test_type_replaces_explicit_categories(self, db, library):
        page = await query.search(db, SearchFilters(type="preview", categories=["lesson"]))
        assert titles(page) == ["Summer Preview"]

    async def test_duration_and_size_ranges(self, db, library):
        page = await query.search(db, SearchFilters(duration_min=60, size_max=2500))
        assert titles(page) == ["Hemming"]

    async def test_mine_only_uses_caller(self, db, library):
        page = await query.search(db, SearchFilters(mine_only=True, sort_by="title", sort_order="asc"), caller_id=ADMIN_ID)
        assert titles(page) == ["Intro to Draping", "Summer Preview"]

    async def test_uploader_filter(self, db, library):
        page = await query.search(db, SearchFilters(uploader_id="someone-else"))
        assert titles(page) == ["Hemming"]


class TestSorting:

    @pytest.mark.parametrize(
        "sort_by, sort_order, expected",
        [
            ("size", "asc", ["Summer Preview", "Hemming", "Intro to Draping"]),
            ("size", "desc", ["Intro to Draping", "Hemming", "Summer Preview"]),
            ("duration", "desc", ["Hemming", "Intro to Draping", "Summer Preview"]),
            ("title", "asc", ["Hemming", "Intro to Draping", "Summer Preview"]),
            ("title", "desc", ["Summer Preview", "Intro to Draping", "Hemming"]),
        ],
    )
    async def test_sort_keys(self, db, library, sort_by, sort_order, expected):
        page = await query.search(db, SearchFilters(sort_by=sort_by, sort_order=sort_order))
        assert titles(page) == expected

    async def test_usage_sort_puts_most_used_first(self, db, library):
        page = await query.search(db, SearchFilters(sort_by="usageCount", sort_order="desc"))
        assert titles(page)[0] == "Hemming"
        assert [a.usage_count for a in page.videos] == [2, 1, 0]

    async def test_unknown_sort_key_falls_back(self, db, library):
        page = await query.search(db, SearchFilters(sort_by="nonsense"))
        assert page.total == 3
        assert len(page.videos) == 3


class TestPagination:

    @pytest.fixture
    async def seven(self, db):
        for i in range(7):
            await add(db, f"courses/lessonVideos/v{i}.mp4", f"Video {i}")
        await db.commit()

    async def test_pages_split_results(self, db, seven):
        first = await query.search(db, SearchFilters(limit=3, page=1, sort_by="title", sort_order="asc"))
        last = await query.search(db, SearchFilters(limit=3, page=3, sort_by="title", sort_order="asc"))

        assert first.total == 7
        assert first.total_pages == 3
        assert (first.has_prev, first.has_next) == (False, True)
        assert titles(first) == ["Video 0", "Video 1", "Video 2"]
        assert titles(last) == ["Video 6"]
        assert (last.has_prev, last.has_next) == (True, False)

    async def test_page_past_the_end_is_empty(self, db, seven):
        page = await query.search(db, SearchFilters(limit=3, page=9))
        assert page.videos == []
        assert page.total == 7

    async def test_page_below_one_is_first_page(self, db, seven):
        page = await query.search(db, SearchFilters(limit=3, page=0))
        assert page.page == 1
        assert len(page.videos) == 3

    @pytest.mark.parametrize("limit, expected", [(0, 1), (-5, 1), (50, 50), (500, 100), (None, 20)])
    def test_clamp_limit(self, limit, expected):
        assert query.clamp_limit(limit) == expected

    async def test_empty_catalog(self, db):
        page = await query.search(db, SearchFilters())
        assert (page.total, page.total_pages, page.has_next, page.has_prev) == (0, 0, False, False)


class TestFacets:

    async def test_category_list_query_is_warning_free(self, db, library):
        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            stats = await query.facets(db)

        assert stats.categories == ["advanced", "lesson", "preview"]

    async def test_aggregates_whole_catalog(self, db, library):
        stats = await query.facets(db)

        assert stats.categories == ["advanced", "lesson", "preview"]
        assert stats.total_videos == 3
        assert stats.total_size == 6000
        assert stats.total_usage == 3
        assert stats.avg_usage == 1.0

    async def test_empty_catalog(self, db):
        stats = await query.facets(db)

        assert stats.categories == []
        assert (stats.total_videos, stats.total_size, stats.total_usage, stats.avg_usage) == (0, 0, 0, 0.0)
