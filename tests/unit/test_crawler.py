"""Tests for the paginated listing crawl."""

import pytest

from servers.show_sync.crawler import (
    STOP_EMPTY_PAGE,
    STOP_FETCH_FAILED,
    STOP_MAX_PAGES,
    STOP_NO_NEXT_PAGE,
    PaginationCrawler,
)
from servers.show_sync.errors import FatalFetchError
from servers.show_sync.sources.extractor import EventExtractor
from servers.show_sync.sources.http import PageFetcher

from tests.factories import TODAY, FakeSite, listing_block, listing_page

PAGE_1 = "https://livemusickelowna.ca/events/"


def page_url(n: int) -> str:
    return PAGE_1 if n == 1 else f"https://livemusickelowna.ca/events/page/{n}/"


def page_with_shows(n: int, count: int = 2, has_next: bool = True) -> str:
    blocks = [
        listing_block(
            title=f"Page {n} Show {i}",
            href=f"https://livemusickelowna.ca/event/p{n}-s{i}/",
        )
        for i in range(count)
    ]
    return listing_page(blocks, next_page=n + 1 if has_next else None)


async def crawl(kelowna, site: FakeSite, max_pages: int = 10):
    async with PageFetcher(client=site.client()) as fetcher:
        extractor = EventExtractor(kelowna, fetcher=fetcher, today=TODAY, batch_pause=0)
        crawler = PaginationCrawler(
            kelowna, fetcher, extractor, max_pages=max_pages, page_delay=0
        )
        return await crawler.crawl()


class TestPaginationCrawler:
    """Tests for PaginationCrawler termination rules."""

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, kelowna):
        """An empty page 3 ends the crawl before page 4 is requested."""
        site = FakeSite(
            {
                page_url(1): page_with_shows(1),
                page_url(2): page_with_shows(2),
                page_url(3): listing_page([], next_page=4),
                page_url(4): page_with_shows(4),
            }
        )

        result = await crawl(kelowna, site, max_pages=10)

        assert result.stop_reason == STOP_EMPTY_PAGE
        assert len(result.shows) == 4
        assert page_url(4) not in site.requests
        assert site.requests == [page_url(1), page_url(2), page_url(3)]

    @pytest.mark.asyncio
    async def test_keeps_page_order(self, kelowna):
        site = FakeSite(
            {
                page_url(1): page_with_shows(1),
                page_url(2): page_with_shows(2, has_next=False),
            }
        )

        result = await crawl(kelowna, site)

        assert [s.title for s in result.shows] == [
            "Page 1 Show 0",
            "Page 1 Show 1",
            "Page 2 Show 0",
            "Page 2 Show 1",
        ]

    @pytest.mark.asyncio
    async def test_stops_without_next_marker(self, kelowna):
        site = FakeSite({page_url(1): page_with_shows(1, has_next=False)})

        result = await crawl(kelowna, site)

        assert result.stop_reason == STOP_NO_NEXT_PAGE
        assert result.pages_fetched == 1
        assert site.requests == [page_url(1)]

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self, kelowna):
        site = FakeSite({page_url(n): page_with_shows(n) for n in range(1, 6)})

        result = await crawl(kelowna, site, max_pages=3)

        assert result.stop_reason == STOP_MAX_PAGES
        assert result.pages_fetched == 3
        assert len(result.shows) == 6
        assert page_url(4) not in site.requests

    @pytest.mark.asyncio
    async def test_later_page_failure_keeps_results(self, kelowna):
        site = FakeSite({page_url(1): page_with_shows(1), page_url(2): 503})

        result = await crawl(kelowna, site)

        assert result.stop_reason == STOP_FETCH_FAILED
        assert result.pages_fetched == 1
        assert len(result.shows) == 2

    @pytest.mark.asyncio
    async def test_first_page_failure_is_fatal(self, kelowna):
        site = FakeSite({page_url(1): 500})

        with pytest.raises(FatalFetchError) as exc:
            await crawl(kelowna, site)

        assert exc.value.status_code == 500
        assert exc.value.url == page_url(1)

    @pytest.mark.asyncio
    async def test_empty_first_page(self, kelowna):
        site = FakeSite({page_url(1): listing_page([], next_page=2)})

        result = await crawl(kelowna, site)

        assert result.shows == []
        assert result.stop_reason == STOP_EMPTY_PAGE


class TestNextPageMarkers:
    """Tests for the per-site next-page cues."""

    def test_kelowna_link_rel_next(self, kelowna):
        assert kelowna.has_next_page(listing_page([], next_page=2)) is True

    def test_kelowna_next_anchor(self, kelowna):
        html = '<a class="page-numbers" href="https://livemusickelowna.ca/events/page/2/">Next</a>'
        assert kelowna.has_next_page(html) is True

    def test_kelowna_no_marker(self, kelowna):
        assert kelowna.has_next_page(listing_page([])) is False

    def test_nelson_next_anchor(self, nelson):
        html = (
            '<a href="https://livemusicnelson.ca/events/page/2/" '
            'class="tribe-events-c-nav__next">Next Events</a>'
        )
        assert nelson.has_next_page(html) is True

    def test_nelson_no_marker(self, nelson):
        assert nelson.has_next_page("<html><body>Last page</body></html>") is False
