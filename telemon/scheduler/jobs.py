"""TELEMON — Scheduler Jobs.

APScheduler interval job that re-runs the batch refresh over the current
metric set. The job is re-armed whenever the refresh interval or the metric
set changes; ``replace_existing`` guarantees the old trigger is dropped.
"""

from datetime import datetime, timezone
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from telemon.cache.metrics_cache import MetricsCache
from telemon.config import settings
from telemon.core.logging import get_logger
from telemon.models.metric_models import MetricConfig
from telemon.models.snapshot_models import MetricSnapshot

logger = get_logger("scheduler")

REFRESH_JOB_ID = "metrics_refresh"


class RefreshScheduler:
    """Owns the periodic refresh task for one cache."""

    def __init__(
        self,
        cache: MetricsCache,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.cache = cache
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.interval_ms: int = settings.default_refresh_interval_ms
        self.configs: List[MetricConfig] = []
        self.latest_snapshots: List[MetricSnapshot] = []
        self.last_run_at: Optional[datetime] = None

    async def refresh_job(self) -> None:
        """Refresh every configured metric through the cache's batch path."""
        if not self.configs:
            return
        try:
            self.latest_snapshots = await self.cache.get_all_metrics(self.configs)
            self.last_run_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {e}")

    def _arm(self) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.add_job(
            self.refresh_job,
            "interval",
            seconds=self.interval_ms / 1000,
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        logger.info(
            f"Refresh job armed every {self.interval_ms} ms for {len(self.configs)} metrics"
        )

    def start(
        self, configs: List[MetricConfig], interval_ms: Optional[int] = None
    ) -> None:
        """Configure and start the scheduler."""
        self.configs = list(configs)
        if interval_ms:
            self.interval_ms = interval_ms
        if not settings.scheduler_enabled:
            logger.info("Scheduler disabled via config")
            return
        if not self.scheduler.running:
            self.scheduler.start()
        self._arm()

    def set_interval(self, interval_ms: int) -> None:
        """Re-arm with a new period."""
        if interval_ms == self.interval_ms:
            return
        self.interval_ms = interval_ms
        self._arm()

    def set_metrics(self, configs: List[MetricConfig]) -> None:
        """Re-arm with a new metric set."""
        self.configs = list(configs)
        self._arm()

    def stop(self) -> None:
        """Shutdown the scheduler gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
