"""TELEMON — Configuration Store.

CRUD over metric definitions. Every call goes to the backend first and mirrors
the result into the local copy. When the backend fails, the change is applied
to the local copy only and the result carries a warning instead of failing.

A locally-only change marks the local copy dirty. While dirty, reads are
served from the local copy and the store tries to push it back to the
backend, so a later successful read cannot silently undo the change.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from telemon.config import settings
from telemon.core.errors import ConfigLoadError, ConfigPersistError, DuplicateMetricError
from telemon.core.logging import get_logger
from telemon.models.metric_models import MetricConfig
from telemon.models.store_models import StoreResult
from telemon.store.local import LocalConfigStore
from telemon.store.remote import RemoteConfigClient

logger = get_logger("store.config")

METRICS_KEY = "metricsConfig"
METRICS_DIRTY_KEY = "metricsConfigDirty"
INTERVAL_KEY = "refreshInterval"
INTERVAL_DIRTY_KEY = "refreshIntervalDirty"


def generate_metric_id(existing: set) -> str:
    """Epoch-millisecond id, bumped until unique."""
    candidate = int(time.time() * 1000)
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


def parse_configs(raw: List[Dict[str, Any]]) -> List[MetricConfig]:
    """Parse stored configs, skipping entries that no longer validate."""
    configs: List[MetricConfig] = []
    for item in raw or []:
        try:
            configs.append(MetricConfig.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid stored metric config: {e.error_count()} errors",
                extra={"metric_id": item.get("id") if isinstance(item, dict) else None},
            )
    return configs


class ConfigStore:
    """Remote-primary, local-fallback metric definition store."""

    def __init__(self, remote: RemoteConfigClient, local: LocalConfigStore):
        self.remote = remote
        self.local = local

    # ── Local helpers ──

    def _local_configs(self) -> List[Dict[str, Any]]:
        return list(self.local.get(METRICS_KEY) or [])

    def _mutate_local(
        self, mutate: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]
    ) -> bool:
        return self.local.set(METRICS_KEY, mutate(self._local_configs()))

    def _fallback(
        self,
        error: Exception,
        saved: bool,
        warning: str,
        metric_id: Optional[str] = None,
        dirty_key: str = METRICS_DIRTY_KEY,
    ) -> StoreResult:
        logger.warning(f"Backend unavailable, applying locally: {error}")
        if not saved:
            return StoreResult(success=False, id=metric_id)
        self.local.set(dirty_key, True)
        return StoreResult(success=True, id=metric_id, warning=warning)

    async def _sync_dirty_metrics(self, local: List[Dict[str, Any]]) -> None:
        try:
            await self.remote.save_metrics_config(local)
        except ConfigPersistError as e:
            logger.info(f"Local metric changes still pending: {e}")
            return
        self.local.set(METRICS_DIRTY_KEY, False)
        logger.info("Pushed locally-only metric changes to backend")

    # ── Metric definitions ──

    async def list(self) -> List[MetricConfig]:
        """All metric definitions, from the backend or the local copy."""
        if self.local.get(METRICS_DIRTY_KEY, False):
            local = self._local_configs()
            await self._sync_dirty_metrics(local)
            return parse_configs(local)

        try:
            raw = await self.remote.fetch_metrics_config()
        except ConfigLoadError as e:
            logger.warning(f"Failed to fetch from server, using local store: {e}")
            return parse_configs(self._local_configs())

        self.local.set(METRICS_KEY, raw)
        return parse_configs(raw)

    async def get(self, metric_id: str) -> Optional[MetricConfig]:
        for config in await self.list():
            if config.id == metric_id:
                return config
        return None

    async def save_all(self, configs: List[MetricConfig]) -> StoreResult:
        payload = [c.to_wire() for c in configs]
        try:
            data = await self.remote.save_metrics_config(payload)
        except ConfigPersistError as e:
            return self._fallback(e, self.local.set(METRICS_KEY, payload), "Saved locally only")
        self.local.set(METRICS_KEY, payload)
        self.local.set(METRICS_DIRTY_KEY, False)
        return StoreResult(success=True, data=data)

    async def create(self, metric: Dict[str, Any]) -> StoreResult:
        """Add a metric. An id is generated when the payload has none.

        Raises DuplicateMetricError when the given id is already taken.
        """
        existing = {c.id for c in await self.list()}
        existing.update(str(c.get("id")) for c in self._local_configs())
        if not metric.get("id"):
            metric = {**metric, "id": generate_metric_id(existing)}
        elif str(metric["id"]) in existing:
            raise DuplicateMetricError(str(metric["id"]))
        metric_id = metric["id"]

        def append(configs):
            return [*configs, metric]

        try:
            data = await self.remote.add_metric(metric)
        except ConfigPersistError as e:
            return self._fallback(e, self._mutate_local(append), "Added locally only", metric_id)
        self._mutate_local(append)
        return StoreResult(success=True, id=metric_id, data=data)

    async def update(self, metric_id: str, updates: Dict[str, Any]) -> StoreResult:
        """Shallow-merge ``updates`` into the stored metric."""

        def merge(configs):
            return [
                {**config, **updates, "id": metric_id} if config.get("id") == metric_id else config
                for config in configs
            ]

        try:
            data = await self.remote.update_metric(metric_id, updates)
        except ConfigPersistError as e:
            return self._fallback(e, self._mutate_local(merge), "Updated locally only", metric_id)
        self._mutate_local(merge)
        return StoreResult(success=True, id=metric_id, data=data)

    async def delete(self, metric_id: str) -> StoreResult:
        def drop(configs):
            return [config for config in configs if config.get("id") != metric_id]

        try:
            data = await self.remote.delete_metric(metric_id)
        except ConfigPersistError as e:
            return self._fallback(e, self._mutate_local(drop), "Deleted locally only", metric_id)
        self._mutate_local(drop)
        return StoreResult(success=True, id=metric_id, data=data)

    async def delete_all(self) -> StoreResult:
        try:
            data = await self.remote.delete_all_metrics()
        except ConfigPersistError as e:
            # An empty list, not a missing key, so the clear survives reads
            return self._fallback(e, self.local.set(METRICS_KEY, []), "Cleared locally only")
        self.local.delete(METRICS_KEY)
        self.local.set(METRICS_DIRTY_KEY, False)
        return StoreResult(success=True, data=data)

    # ── Settings ──

    async def get_refresh_interval(self) -> int:
        local = self.local.get(INTERVAL_KEY)
        if self.local.get(INTERVAL_DIRTY_KEY, False) and local is not None:
            try:
                await self.remote.save_refresh_interval(int(local))
                self.local.set(INTERVAL_DIRTY_KEY, False)
            except ConfigPersistError as e:
                logger.info(f"Local refresh interval still pending: {e}")
            return int(local)

        try:
            interval = await self.remote.get_refresh_interval()
        except ConfigLoadError as e:
            logger.warning(f"Failed to fetch refresh interval, using local store: {e}")
            return int(local) if local is not None else settings.default_refresh_interval_ms

        self.local.set(INTERVAL_KEY, interval)
        return interval

    async def set_refresh_interval(self, interval_ms: int) -> StoreResult:
        try:
            data = await self.remote.save_refresh_interval(interval_ms)
        except ConfigPersistError as e:
            return self._fallback(
                e,
                self.local.set(INTERVAL_KEY, interval_ms),
                "Saved locally only",
                dirty_key=INTERVAL_DIRTY_KEY,
            )
        self.local.set(INTERVAL_KEY, interval_ms)
        self.local.set(INTERVAL_DIRTY_KEY, False)
        return StoreResult(success=True, data=data)

    async def close(self) -> None:
        await self.remote.close()
