"""Health monitoring for site sync runs."""

from datetime import datetime
from typing import Any, Optional

import structlog

from ..models import RunResult

logger = structlog.get_logger()


class HealthMonitor:
    """Track the outcome of the most recent run per site.

    Backs the /health endpoint: a site is healthy until a run fails, and
    stays unhealthy until a later run succeeds.
    """

    def __init__(self):
        self.status: dict[str, dict[str, Any]] = {}

    def record(self, result: RunResult) -> None:
        """Record a finished run (success or failure)."""
        if result.succeeded:
            self.record_success(
                result.site,
                stats=result.stats.model_dump() if result.stats else {},
            )
        else:
            self.record_failure(result.site, error=result.error or "unknown error")

    def record_success(self, site: str, stats: dict[str, int]) -> None:
        """Record a completed run for a site."""
        self.status[site] = {
            "healthy": True,
            "last_run": datetime.now().isoformat(),
            "stats": stats,
            "consecutive_failures": 0,
            "last_error": None,
        }
        logger.debug("site_healthy", site=site, **stats)

    def record_failure(self, site: str, error: str) -> None:
        """Record a failed run for a site."""
        consecutive = self.status.get(site, {}).get("consecutive_failures", 0) + 1

        self.status[site] = {
            "healthy": False,
            "last_run": datetime.now().isoformat(),
            "stats": {},
            "consecutive_failures": consecutive,
            "last_error": error,
        }
        logger.warning(
            "site_unhealthy",
            site=site,
            consecutive_failures=consecutive,
            error=error,
        )

    def is_healthy(self, site: str) -> bool:
        """Sites that never ran count as healthy."""
        return self.status.get(site, {}).get("healthy", True)

    def get_site_status(self, site: str) -> Optional[dict[str, Any]]:
        return self.status.get(site)

    def get_status(self) -> dict[str, Any]:
        """Full health report for all tracked sites."""
        healthy_count = sum(1 for s in self.status.values() if s.get("healthy", False))
        total_count = len(self.status)

        return {
            "status": "healthy" if healthy_count == total_count else "degraded",
            "timestamp": datetime.now().isoformat(),
            "summary": {
                "healthy": healthy_count,
                "unhealthy": total_count - healthy_count,
                "total": total_count,
            },
            "sites": self.status,
        }

    def reset(self, site: Optional[str] = None) -> None:
        """Forget one site's status, or all of them."""
        if site:
            self.status.pop(site, None)
        else:
            self.status.clear()
