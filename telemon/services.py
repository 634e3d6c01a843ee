"""TELEMON — Service Wiring.

Builds the long-lived collaborators once per process and hands them to routes
through ``app.state``. There is no module-level cache.
"""

from fastapi import Request

from telemon.cache.metrics_cache import MetricsCache
from telemon.connectors.adapter import DataSourceAdapter
from telemon.core.demo_metrics import DEMO_METRICS
from telemon.core.logging import get_logger
from telemon.scheduler.jobs import RefreshScheduler
from telemon.store.config_store import METRICS_KEY, ConfigStore
from telemon.store.local import LocalConfigStore
from telemon.store.remote import RemoteConfigClient

logger = get_logger("services")


class Services:
    """Everything a request handler may need."""

    def __init__(
        self,
        adapter: DataSourceAdapter,
        cache: MetricsCache,
        store: ConfigStore,
        scheduler: RefreshScheduler,
    ):
        self.adapter = adapter
        self.cache = cache
        self.store = store
        self.scheduler = scheduler

    async def reload_metrics(self) -> None:
        """Push the current metric set to the refresh job."""
        configs = await self.store.list()
        self.scheduler.set_metrics(configs)

    async def close(self) -> None:
        self.scheduler.stop()
        await self.adapter.close()
        await self.store.close()


def build_services(engine, seed_demo: bool = False) -> Services:
    adapter = DataSourceAdapter()
    cache = MetricsCache(adapter)
    local = LocalConfigStore(engine)
    if seed_demo and local.get(METRICS_KEY) is None:
        local.set(METRICS_KEY, DEMO_METRICS)
        logger.info(f"Seeded {len(DEMO_METRICS)} demo metrics into local store")
    store = ConfigStore(RemoteConfigClient(), local)
    scheduler = RefreshScheduler(cache)
    return Services(adapter=adapter, cache=cache, store=store, scheduler=scheduler)


def get_services(request: Request) -> Services:
    """Dependency — the process-wide Services instance."""
    return request.app.state.services
