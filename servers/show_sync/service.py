"""
Trigger surface shared by the HTTP server, the scheduler and the CLI.

Each site has its own asyncio lock: a trigger for a site whose run is
still in progress is answered with 409 instead of starting a second run
against the same records.
"""

import asyncio
import datetime as dt
from typing import Any, Callable, Optional

import httpx
import structlog
from structlog.typing import FilteringBoundLogger

from .config.settings import RunSettings, StoreSettings
from .config.sites import SITES, SiteConfig
from .errors import ConfigurationError
from .models import RunResult
from .pipeline import ShowSyncPipeline, build_response, utc_now
from .resilience.health import HealthMonitor
from .sources.http import PageFetcher
from .store import RecordStore

Response = tuple[int, dict[str, Any]]


class SyncService:
    """Run site pipelines on demand with one active run per site."""

    def __init__(
        self,
        sites: Optional[dict[str, SiteConfig]] = None,
        run_settings: Optional[RunSettings] = None,
        store_settings: Optional[StoreSettings] = None,
        health: Optional[HealthMonitor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        store_client: Optional[httpx.AsyncClient] = None,
        today: Optional[dt.date] = None,
        clock: Callable[[], dt.datetime] = utc_now,
        logger: Optional[FilteringBoundLogger] = None,
    ):
        """Initialize the service.

        Args:
            sites: Sites by key (built-in sites if None)
            run_settings: Run tunables (read from the environment if None)
            store_settings: Store credentials (read from the environment on first run if None)
            health: Health monitor shared with the /health endpoint
            http_client: Optional shared client for site fetches
            store_client: Optional shared client for store calls
            today: Fixed run day (the current date if None)
            clock: Source of response timestamps
            logger: Structured logger
        """
        self.sites = dict(SITES if sites is None else sites)
        self.run_settings = run_settings or RunSettings.from_env()
        self._store_settings = store_settings
        self.health = health or HealthMonitor()
        self.http_client = http_client
        self.store_client = store_client
        self.today = today
        self.clock = clock
        self.log = logger or structlog.get_logger(__name__)
        self._locks: dict[str, asyncio.Lock] = {key: asyncio.Lock() for key in self.sites}

    @property
    def store_settings(self) -> StoreSettings:
        if self._store_settings is None:
            self._store_settings = StoreSettings.from_env()
        return self._store_settings

    def is_running(self, site_key: str) -> bool:
        lock = self._locks.get(site_key)
        return lock is not None and lock.locked()

    async def trigger(self, site_key: str) -> Response:
        """Run one site unless a run for it is already active.

        Raises:
            KeyError: If the site is not configured
        """
        site = self.sites[site_key]
        lock = self._locks[site.key]

        if lock.locked():
            self.log.warning("run_already_active", site=site.key)
            return 409, {
                "success": False,
                "error": f"A sync for {site.city.value} is already running",
                "timestamp": self.clock().isoformat(),
            }

        async with lock:
            try:
                result = await self.run_site(site)
            except ConfigurationError as e:
                self.log.error("run_not_configured", site=site.key, error=str(e))
                self.health.record_failure(site.key, error=str(e))
                return 500, {
                    "success": False,
                    "error": str(e),
                    "timestamp": self.clock().isoformat(),
                }

        self.health.record(result)
        return build_response(result, now=self.clock())

    async def trigger_all(self) -> Response:
        """Run every configured site one after another."""
        results: dict[str, dict[str, Any]] = {}
        statuses: list[int] = []

        for key in self.sites:
            status, body = await self.trigger(key)
            results[key] = body
            statuses.append(status)

        if all(status == 200 for status in statuses):
            overall = 200
        elif 500 in statuses:
            overall = 500
        else:
            overall = 409

        return overall, {
            "success": overall == 200,
            "results": results,
            "timestamp": self.clock().isoformat(),
        }

    async def run_site(self, site: SiteConfig) -> RunResult:
        """Run the pipeline for one site with fresh fetcher and store clients."""
        store_settings = self.store_settings
        timeout = self.run_settings.request_timeout

        async with PageFetcher(
            client=self.http_client,
            allowed_hosts=[site.host],
            timeout=timeout,
            logger=self.log,
        ) as fetcher, RecordStore(
            store_settings, client=self.store_client, timeout=timeout
        ) as store:
            pipeline = ShowSyncPipeline(
                site,
                fetcher,
                store,
                settings=self.run_settings,
                collection=store_settings.collection,
                today=self.today,
                clock=self.clock,
                logger=self.log,
            )
            return await pipeline.run()


async def scheduled_sync(service: Optional[SyncService] = None) -> Response:
    """Entry point for time-based triggers; same request as POST /sync."""
    service = service or SyncService()
    service.log.info("scheduled_sync_started", sites=list(service.sites))
    return await service.trigger_all()
