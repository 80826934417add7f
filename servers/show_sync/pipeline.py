"""
Orchestrates one sync run for one site.

Crawl -> enrich -> dedup -> drop past shows -> sync, tracked by a small
state machine. Only a failed first listing page moves the run to FAILED;
every later stage absorbs its own per-item failures and the run ends in
DONE with whatever it managed to collect.
"""

import datetime as dt
from typing import Any, Callable, Optional

import structlog
from structlog.typing import FilteringBoundLogger

from .config.settings import RunSettings
from .config.sites import SiteConfig
from .crawler import PaginationCrawler
from .dedup import deduplicate
from .enrichment import GenreEnrichment
from .errors import FatalFetchError
from .models import RunResult, RunState, Show, SyncStats
from .sources.extractor import EventExtractor
from .sources.http import PageFetcher
from .store import RecordStore
from .sync import SyncEngine


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def filter_upcoming(shows: list[Show], today: dt.date) -> list[Show]:
    """Drop shows dated before `today`."""
    return [show for show in shows if show.date >= today]


def build_response(
    result: RunResult, now: Optional[dt.datetime] = None
) -> tuple[int, dict[str, Any]]:
    """Format a run result as (HTTP status, JSON body) for the trigger caller."""
    timestamp = (now or result.finished_at or utc_now()).isoformat()

    if not result.succeeded:
        return 500, {
            "success": False,
            "error": result.error or "Sync failed",
            "timestamp": timestamp,
        }

    stats = result.stats or SyncStats()
    return 200, {
        "success": True,
        "message": f"{result.city.value} shows synced successfully",
        "stats": stats.model_dump(),
        "timestamp": timestamp,
    }


class ShowSyncPipeline:
    """Run the full scrape-extract-enrich-sync sequence for one site."""

    def __init__(
        self,
        site: SiteConfig,
        fetcher: PageFetcher,
        store: RecordStore,
        settings: Optional[RunSettings] = None,
        collection: str = "shows",
        today: Optional[dt.date] = None,
        clock: Callable[[], dt.datetime] = utc_now,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        """Initialize the pipeline.

        Args:
            site: Site to crawl
            fetcher: Entered page fetcher
            store: Entered record store client
            settings: Run tunables (defaults if None)
            collection: Store collection shows are synced into
            today: Run day for the upcoming filter and date fallback
            clock: Source of run timestamps
            logger: Structured logger
        """
        self.site = site
        self.fetcher = fetcher
        self.store = store
        self.settings = settings or RunSettings()
        self.collection = collection
        self.today = today
        self.clock = clock
        self.log = (logger or structlog.get_logger(__name__)).bind(site=site.key)
        self.state = RunState.FETCHING

    def _transition(self, state: RunState, **context) -> None:
        self.log.info(
            "run_state_changed", from_state=self.state.value, to_state=state.value, **context
        )
        self.state = state

    async def run(self) -> RunResult:
        """Execute one run.

        Returns:
            RunResult in state DONE, or FAILED if the first listing page
            could not be fetched
        """
        started_at = self.clock()
        today = self.today or dt.date.today()
        self.state = RunState.FETCHING
        result = RunResult(
            site=self.site.key,
            city=self.site.city,
            state=self.state,
            started_at=started_at,
        )
        self.log.info("run_started", city=self.site.city.value, today=today.isoformat())

        extractor = EventExtractor(
            self.site,
            fetcher=self.fetcher,
            link_follow_limit=self.settings.link_follow_limit,
            batch_size=self.settings.batch_size,
            batch_pause=self.site.enrichment_pause,
            today=today,
            logger=self.log,
        )
        crawler = PaginationCrawler(
            self.site,
            self.fetcher,
            extractor,
            max_pages=self.settings.max_pages,
            page_delay=self.settings.page_delay,
            logger=self.log,
        )

        try:
            crawl = await crawler.crawl()
        except FatalFetchError as e:
            self._transition(RunState.FAILED, error=str(e))
            result.state = RunState.FAILED
            result.error = f"Failed to fetch {e.url}: {e}"
            result.finished_at = self.clock()
            self.log.error("run_failed", error=result.error)
            return result

        shows = crawl.shows
        result.crawled = len(shows)
        self._transition(
            RunState.EXTRACTING,
            pages=crawl.pages_fetched,
            shows=len(shows),
            stop_reason=crawl.stop_reason,
        )

        self._transition(RunState.ENRICHING)
        enrichment = GenreEnrichment(
            self.site,
            self.fetcher,
            batch_size=self.settings.batch_size,
            logger=self.log,
        )
        result.enriched = await enrichment.enrich(shows)

        self._transition(RunState.DEDUPLICATING)
        deduped = deduplicate(shows)
        result.duplicates_removed = deduped.duplicates_removed
        if deduped.duplicates_removed:
            self.log.info(
                "duplicates_removed",
                removed=deduped.duplicates_removed,
                rate=round(deduped.dedup_rate, 1),
            )

        self._transition(RunState.FILTERING)
        upcoming = filter_upcoming(deduped.shows, today)
        result.past_shows_removed = len(deduped.shows) - len(upcoming)

        self._transition(RunState.SYNCING, shows=len(upcoming))
        engine = SyncEngine(
            self.store,
            collection=self.collection,
            batch_lookup=self.settings.batch_lookup,
            logger=self.log,
        )
        result.stats = await engine.sync(upcoming)

        self._transition(RunState.DONE)
        result.state = RunState.DONE
        result.finished_at = self.clock()
        self.log.info("run_finished", **result.stats.model_dump())
        return result
