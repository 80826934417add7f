"""
Paginated crawl of a site's event listing.

Pages are fetched strictly one after another with a politeness delay in
between. The crawl stops, keeping everything collected so far, when:
1. A page fetch fails (page 1 failing is fatal for the whole run)
2. A page yields no shows
3. max_pages pages have been crawled
4. The page carries no "next page" marker
"""

import asyncio
from typing import Optional

import structlog
from structlog.typing import FilteringBoundLogger

from .config.sites import SiteConfig
from .errors import FatalFetchError, TransportError
from .models import CrawlResult, Show
from .sources.extractor import EventExtractor
from .sources.http import PageFetcher

STOP_FETCH_FAILED = "fetch_failed"
STOP_EMPTY_PAGE = "empty_page"
STOP_MAX_PAGES = "max_pages"
STOP_NO_NEXT_PAGE = "no_next_page"


class PaginationCrawler:
    """Drive the extractor across successive listing pages of one site."""

    def __init__(
        self,
        site: SiteConfig,
        fetcher: PageFetcher,
        extractor: EventExtractor,
        max_pages: int = 10,
        page_delay: float = 1.0,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        self.site = site
        self.fetcher = fetcher
        self.extractor = extractor
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.log = (logger or structlog.get_logger(__name__)).bind(site=site.key)

    async def crawl(self) -> CrawlResult:
        """Crawl listing pages until a termination rule fires.

        Returns:
            CrawlResult with shows in page order

        Raises:
            FatalFetchError: If the first listing page cannot be fetched
        """
        shows: list[Show] = []
        page = 1

        while True:
            url = self.site.page_url(page)
            self.log.info("page_crawl_started", page=page, url=url)

            try:
                html = await self.fetcher.fetch(url)
            except TransportError as e:
                if page == 1:
                    raise FatalFetchError.from_transport(e) from e
                return self._stop(shows, page - 1, STOP_FETCH_FAILED, error=str(e))

            page_shows = await self.extractor.extract_listing(html, page_url=url)
            if not page_shows:
                return self._stop(shows, page, STOP_EMPTY_PAGE)

            shows.extend(page_shows)
            self.log.info("page_crawled", page=page, shows=len(page_shows))

            if page >= self.max_pages:
                return self._stop(shows, page, STOP_MAX_PAGES)

            if not self.site.has_next_page(html):
                return self._stop(shows, page, STOP_NO_NEXT_PAGE)

            if self.page_delay > 0:
                await asyncio.sleep(self.page_delay)
            page += 1

    def _stop(
        self, shows: list[Show], pages_fetched: int, reason: str, **context
    ) -> CrawlResult:
        self.log.info(
            "pagination_stopped",
            reason=reason,
            pages=pages_fetched,
            shows=len(shows),
            **context,
        )
        return CrawlResult(shows=shows, pages_fetched=pages_fetched, stop_reason=reason)
