"""
Genre enrichment pass.

Shows whose genre is still exactly ["General"] and that link to an event
page get that page fetched and the genre policy re-run against it. The
genre is replaced only by a specific result, so enrichment can upgrade a
show but never regress it; failed fetches leave the show untouched.
"""

from collections import defaultdict
from typing import Optional

import structlog
from structlog.typing import FilteringBoundLogger

from .config.sites import SiteConfig
from .errors import TransportError
from .models import DEFAULT_GENRE, Show
from .resilience.batching import gather_in_batches
from .sources.genres import extract_genres
from .sources.http import PageFetcher


def select_for_enrichment(shows: list[Show], site: SiteConfig) -> list[Show]:
    """Shows with the generic genre and an event-detail URL."""
    return [
        show for show in shows if show.has_generic_genre and site.is_event_url(show.source_url)
    ]


def is_upgrade(genres: Optional[list[str]]) -> bool:
    """A non-empty genre list other than the generic default."""
    return bool(genres) and genres != [DEFAULT_GENRE]


class GenreEnrichment:
    """Fetch detail pages for generic-genre shows in bounded batches."""

    def __init__(
        self,
        site: SiteConfig,
        fetcher: PageFetcher,
        batch_size: int = 10,
        pause: Optional[float] = None,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        self.site = site
        self.fetcher = fetcher
        self.batch_size = batch_size
        self.pause = site.enrichment_pause if pause is None else pause
        self.log = (logger or structlog.get_logger(__name__)).bind(site=site.key)

    async def enrich(self, shows: list[Show]) -> int:
        """Upgrade generic genres in place.

        Shows sharing a detail URL are fetched once.

        Returns:
            Number of shows whose genre was upgraded
        """
        selected = select_for_enrichment(shows, self.site)
        if not selected:
            return 0

        by_url: dict[str, list[Show]] = defaultdict(list)
        for show in selected:
            by_url[show.source_url].append(show)

        urls = list(by_url)
        self.log.info("enrichment_started", shows=len(selected), pages=len(urls))

        results = await gather_in_batches(
            urls,
            self._fetch_genres,
            batch_size=self.batch_size,
            pause=self.pause,
            label="genre_enrichment",
            log=self.log,
        )

        upgraded = 0
        for url, genres in zip(urls, results):
            if not is_upgrade(genres):
                continue
            for show in by_url[url]:
                # Only generic genres are ever replaced
                if show.has_generic_genre:
                    show.genre = list(genres)
                    upgraded += 1
                    self.log.info("genre_upgraded", title=show.title, genre=show.genre)

        self.log.info("enrichment_finished", upgraded=upgraded, pages=len(urls))
        return upgraded

    async def _fetch_genres(self, url: str) -> Optional[list[str]]:
        try:
            html = await self.fetcher.fetch(url)
        except TransportError as e:
            self.log.warning("genre_page_skipped", url=url, error=str(e))
            return None
        return extract_genres(html)
