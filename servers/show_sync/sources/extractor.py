"""
Show extraction from event-calendar pages.

Two entry points share the field rules in fields.py and the genre policy:
- Listing mode: split a listing page into event blocks and read each one
- Detail mode: read a single event page

When a listing page yields no usable records at all, the extractor falls
back to link-following: it collects the page's event-detail links, fetches
a bounded number of them and runs detail mode on each.
"""

import datetime as dt
from typing import Optional
from urllib.parse import urldefrag, urljoin

import structlog
from bs4 import BeautifulSoup, Tag
from structlog.typing import FilteringBoundLogger

from ..config.sites import SiteConfig
from ..dates import resolve_show_date
from ..errors import TransportError
from ..models import DEFAULT_TIME, DEFAULT_VENUE, MAX_DESCRIPTION_LENGTH, Show
from ..resilience.batching import gather_in_batches
from .fields import (
    BLOCK_SELECTORS,
    DATE_RULES,
    DESCRIPTION_RULES,
    DETAIL_DATE_RULES,
    DETAIL_DESCRIPTION_RULES,
    DETAIL_IMAGE_RULES,
    DETAIL_TITLE_RULES,
    DETAIL_VENUE_ADDRESS_RULES,
    DETAIL_VENUE_RULES,
    IMAGE_RULES,
    TITLE_RULES,
    VENUE_ADDRESS_RULES,
    VENUE_RULES,
    apply_rules,
    detail_url_rules,
    extract_time,
)
from .genres import extract_genres
from .http import PageFetcher
from .text import truncate


def find_event_blocks(soup: Tag, selectors: list[str] = BLOCK_SELECTORS) -> list[Tag]:
    """Find event containers; the first selector matching anything wins."""
    for selector in selectors:
        blocks = soup.select(selector)
        if blocks:
            return blocks
    return []


class EventExtractor:
    """Turn listing and detail documents of one site into Show records."""

    def __init__(
        self,
        site: SiteConfig,
        fetcher: Optional[PageFetcher] = None,
        link_follow_limit: int = 20,
        batch_size: int = 10,
        batch_pause: float = 0.5,
        today: Optional[dt.date] = None,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        """Initialize the extractor.

        Args:
            site: Site the documents come from
            fetcher: Page fetcher for link-following (disabled if None)
            link_follow_limit: Max detail pages fetched per listing page
            batch_size: Concurrent detail fetches when link-following
            batch_pause: Delay between link-following batches in seconds
            today: Run day used for date fallback (defaults to the current date)
            logger: Structured logger
        """
        self.site = site
        self.fetcher = fetcher
        self.link_follow_limit = link_follow_limit
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self.today = today
        self.log = (logger or structlog.get_logger(__name__)).bind(site=site.key)

    # -- Listing mode -------------------------------------------------------

    async def extract_listing(self, html: str, page_url: Optional[str] = None) -> list[Show]:
        """Extract shows from a listing page, following event links if needed."""
        page_url = page_url or self.site.base_url
        shows = self.parse_listing(html, page_url=page_url)
        if shows:
            return shows

        if self.fetcher is None:
            return []

        self.log.info("listing_blocks_unusable", url=page_url)
        return await self.follow_event_links(html, page_url=page_url)

    def parse_listing(self, html: str, page_url: Optional[str] = None) -> list[Show]:
        """Extract shows from the event blocks of a listing page (no fetching)."""
        page_url = page_url or self.site.base_url
        soup = BeautifulSoup(html, "html.parser")

        blocks = find_event_blocks(soup)
        shows: list[Show] = []
        for block in blocks:
            show = self.parse_block(block, page_url=page_url)
            if show:
                shows.append(show)

        self.log.debug(
            "listing_parsed", url=page_url, blocks=len(blocks), shows=len(shows)
        )
        return shows

    def parse_block(self, block: Tag, page_url: Optional[str] = None) -> Optional[Show]:
        """Read one listing block; None if title or date is missing."""
        page_url = page_url or self.site.base_url
        try:
            title = apply_rules(block, TITLE_RULES)
            raw_date = apply_rules(block, DATE_RULES)
            if not title or not raw_date:
                self.log.debug("show_discarded", title=title, raw_date=raw_date)
                return None

            url_rules = detail_url_rules(self.site.is_event_url, page_url)
            detail_url = apply_rules(block, url_rules)
            image_url = apply_rules(block, IMAGE_RULES)

            return self._build_show(
                title=title,
                raw_date=raw_date,
                time=extract_time(block),
                venue=apply_rules(block, VENUE_RULES),
                venue_address=apply_rules(block, VENUE_ADDRESS_RULES),
                genre=extract_genres(block),
                description=apply_rules(block, DESCRIPTION_RULES),
                image_url=urljoin(page_url, image_url) if image_url else None,
                source_url=(
                    self._absolute(detail_url, page_url) if detail_url else self.site.root_url
                ),
            )
        except (ValueError, TypeError, AttributeError) as e:
            self.log.warning("block_parse_failed", error=str(e))
            return None

    # -- Link-following mode ------------------------------------------------

    def find_event_links(self, html: str, page_url: Optional[str] = None) -> list[str]:
        """Unique event-detail URLs linked from a document, in page order."""
        page_url = page_url or self.site.base_url
        soup = BeautifulSoup(html, "html.parser")

        links: list[str] = []
        seen: set[str] = set()
        for anchor in soup.select("a[href]"):
            url = self._absolute(anchor["href"], page_url)
            if url in seen or not self.site.is_event_url(url):
                continue
            seen.add(url)
            links.append(url)
        return links

    async def follow_event_links(self, html: str, page_url: Optional[str] = None) -> list[Show]:
        """Fetch linked event pages (bounded) and extract one show from each."""
        if self.fetcher is None:
            return []

        links = self.find_event_links(html, page_url=page_url)
        selected = links[: self.link_follow_limit]
        self.log.info("following_event_links", found=len(links), fetching=len(selected))

        results = await gather_in_batches(
            selected,
            self._fetch_detail,
            batch_size=self.batch_size,
            pause=self.batch_pause,
            label="link_follow",
            log=self.log,
        )
        return [show for show in results if show is not None]

    async def _fetch_detail(self, url: str) -> Optional[Show]:
        try:
            html = await self.fetcher.fetch(url)
        except TransportError as e:
            self.log.warning("event_page_skipped", url=url, error=str(e))
            return None
        return self.parse_detail(html, url)

    # -- Detail mode --------------------------------------------------------

    def parse_detail(self, html: str, url: Optional[str] = None) -> Optional[Show]:
        """Extract a show from an event-detail page; None if title or date is missing."""
        soup = BeautifulSoup(html, "html.parser")
        try:
            title = apply_rules(soup, DETAIL_TITLE_RULES)
            raw_date = apply_rules(soup, DETAIL_DATE_RULES)
            if not title or not raw_date:
                self.log.debug("detail_discarded", url=url, title=title, raw_date=raw_date)
                return None

            return self._build_show(
                title=title,
                raw_date=raw_date,
                time=extract_time(soup.body or soup),
                venue=apply_rules(soup, DETAIL_VENUE_RULES),
                venue_address=apply_rules(soup, DETAIL_VENUE_ADDRESS_RULES),
                genre=extract_genres(soup),
                description=apply_rules(soup, DETAIL_DESCRIPTION_RULES),
                image_url=apply_rules(soup, DETAIL_IMAGE_RULES),
                source_url=url or self.site.root_url,
            )
        except (ValueError, TypeError, AttributeError) as e:
            self.log.warning("detail_parse_failed", url=url, error=str(e))
            return None

    # -- Helpers ------------------------------------------------------------

    def _build_show(
        self,
        title: str,
        raw_date: str,
        time: Optional[str],
        venue: Optional[str],
        venue_address: Optional[str],
        genre: list[str],
        description: Optional[str],
        image_url: Optional[str],
        source_url: Optional[str],
    ) -> Show:
        date, estimated = resolve_show_date(raw_date, today=self.today or dt.date.today())
        if estimated:
            self.log.warning("show_date_estimated", title=title, raw_date=raw_date)

        if not description:
            description = f"{title} at {venue or 'venue TBA'}"

        return Show(
            title=title,
            artist=title,
            venue=venue or DEFAULT_VENUE,
            venue_address=venue_address or "",
            city=self.site.city,
            date=date,
            date_estimated=estimated,
            time=time or DEFAULT_TIME,
            genre=genre,
            description=truncate(description, MAX_DESCRIPTION_LENGTH),
            image_url=image_url,
            source_url=source_url,
        )

    @staticmethod
    def _absolute(href: str, page_url: str) -> str:
        url, _fragment = urldefrag(urljoin(page_url, href.strip()))
        return url
