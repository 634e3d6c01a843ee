"""TELEMON — Metric Cache.

Holds one entry per metric id and guarantees at most one outstanding fetch per
id. Fresh entries are served without I/O. Concurrent callers for an id that is
already being fetched share the same result. Completed refreshes are fanned
out to subscribers.

Per-id lifecycle: absent → fetching → cached (fresh) → cached (stale) →
fetching → … A failed fetch writes nothing, so the id goes back to whatever
it was before.

All bookkeeping runs on one event loop. The in-flight map is read and written
with no ``await`` in between, which is what makes it the lock.
"""

import asyncio
import itertools
import time
from typing import Callable, Dict, List, Optional

from telemon.analyzer.pipeline import evaluate_metric, fetch_metrics_data
from telemon.config import settings
from telemon.connectors.adapter import DataSourceAdapter
from telemon.core.errors import FetchError, FetchTimeoutError
from telemon.core.logging import get_logger
from telemon.models.metric_models import MetricConfig
from telemon.models.snapshot_models import DATA_NOT_AVAILABLE, MetricSnapshot

logger = get_logger("cache")

Subscriber = Callable[[MetricSnapshot], None]


class CacheEntry:
    """Latest good snapshot for a metric and when it was fetched."""

    __slots__ = ("snapshot", "last_fetch")

    def __init__(self, snapshot: MetricSnapshot, last_fetch: float):
        self.snapshot = snapshot
        self.last_fetch = last_fetch

    def __repr__(self) -> str:
        return f"<CacheEntry {self.snapshot.id} @ {self.last_fetch:.3f}>"


class MetricsCache:
    """Per-metric cache with in-flight de-duplication and subscriber fan-out."""

    def __init__(
        self,
        adapter: DataSourceAdapter,
        wait_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapter = adapter
        self.wait_timeout = (
            wait_timeout if wait_timeout is not None else settings.inflight_wait_timeout_s
        )
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self._subscribers: Dict[str, Dict[int, Subscriber]] = {}
        self._tokens = itertools.count()
        self._counters = {"hits": 0, "misses": 0, "fetches": 0, "batch_fetches": 0,
                          "errors": 0, "wait_timeouts": 0}

    # ── Subscriptions ──

    def subscribe(self, metric_id: str, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` with each refreshed snapshot of ``metric_id``.

        Returns an unsubscribe function that is safe to call more than once.
        """
        token = next(self._tokens)
        self._subscribers.setdefault(metric_id, {})[token] = callback

        def unsubscribe() -> None:
            subs = self._subscribers.get(metric_id)
            if subs is None:
                return
            subs.pop(token, None)
            if not subs:
                self._subscribers.pop(metric_id, None)

        return unsubscribe

    def _notify(self, metric_id: str, snapshot: MetricSnapshot) -> None:
        subs = self._subscribers.get(metric_id)
        if not subs:
            return
        for callback in list(subs.values()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception(
                    "Subscriber callback failed", extra={"metric_id": metric_id}
                )

    # ── Freshness & in-flight bookkeeping ──

    def _is_fresh(self, metric_id: str, config: MetricConfig, now: float) -> bool:
        entry = self._entries.get(metric_id)
        if entry is None:
            return False
        return now - entry.last_fetch < config.refresh_interval_s

    def _begin(self, metric_id: str) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._inflight[metric_id] = future
        return future

    def _finish(
        self,
        metric_id: str,
        future: asyncio.Future,
        result: Optional[MetricSnapshot] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        if self._inflight.get(metric_id) is future:
            del self._inflight[metric_id]
        if future.done():
            return
        if isinstance(error, asyncio.CancelledError):
            future.cancel()
        elif error is not None:
            future.set_exception(error)
            # Mark retrieved; waiters get it through shield()
            future.exception()
        else:
            future.set_result(result)

    async def _wait_for(self, metric_id: str, future: asyncio.Future) -> MetricSnapshot:
        """Attach to another caller's fetch. The fetch itself is never cancelled."""
        try:
            return await asyncio.wait_for(asyncio.shield(future), self.wait_timeout)
        except asyncio.TimeoutError:
            self._counters["wait_timeouts"] += 1
            logger.warning(
                f"Timed out after {self.wait_timeout}s waiting on in-flight fetch",
                extra={"metric_id": metric_id},
            )
            raise FetchTimeoutError(metric_id, self.wait_timeout) from None

    def _owns(self, metric_id: str, future: asyncio.Future) -> bool:
        """False once the id was forgotten while this fetch was running."""
        return self._inflight.get(metric_id) is future

    def _store(self, snapshots: Dict[str, MetricSnapshot], fetched_at: float) -> None:
        """Write entries in one step; no await may happen in here."""
        for metric_id, snapshot in snapshots.items():
            self._entries[metric_id] = CacheEntry(snapshot, fetched_at)

    # ── Single metric ──

    async def get_metric(self, config: MetricConfig) -> MetricSnapshot:
        """Return a fresh snapshot, fetching at most once per id at a time.

        Raises FetchError when the fetch fails and FetchTimeoutError when
        waiting on another caller's fetch exceeds ``wait_timeout``.
        """
        metric_id = config.id

        if self._is_fresh(metric_id, config, self._clock()):
            self._counters["hits"] += 1
            return self._entries[metric_id].snapshot

        pending = self._inflight.get(metric_id)
        if pending is not None:
            return await self._wait_for(metric_id, pending)

        self._counters["misses"] += 1
        self._counters["fetches"] += 1
        future = self._begin(metric_id)
        try:
            snapshot = await evaluate_metric(config, self.adapter)
        except BaseException as e:
            self._counters["errors"] += 1
            self._finish(metric_id, future, error=e)
            raise

        current = self._owns(metric_id, future)
        if current:
            self._store({metric_id: snapshot}, self._clock())
        self._finish(metric_id, future, result=snapshot)
        if current:
            self._notify(metric_id, snapshot)
        return snapshot

    async def get_metrics(self, configs: List[MetricConfig]) -> List[MetricSnapshot]:
        """Concurrent single-metric lookups."""
        return list(await asyncio.gather(*(self.get_metric(c) for c in configs)))

    # ── Batch ──

    async def get_all_metrics(self, configs: List[MetricConfig]) -> List[MetricSnapshot]:
        """Refresh every stale metric with one composite fetch.

        Always returns one snapshot per requested config: the error snapshot
        when this refresh failed for it, otherwise the cached one, otherwise a
        "Data not available" placeholder.
        """
        now = self._clock()
        to_fetch: Dict[str, MetricConfig] = {}
        waiting: Dict[str, asyncio.Future] = {}
        by_id = {config.id: config for config in configs}

        for config in configs:
            metric_id = config.id
            if metric_id in to_fetch or metric_id in waiting:
                continue
            if self._is_fresh(metric_id, config, now):
                self._counters["hits"] += 1
                continue
            pending = self._inflight.get(metric_id)
            if pending is not None:
                waiting[metric_id] = pending
            else:
                to_fetch[metric_id] = config

        failures: Dict[str, MetricSnapshot] = {}
        if to_fetch:
            failures = await self._refresh_batch(to_fetch)

        if waiting:
            outcomes = await asyncio.gather(
                *(self._wait_for(mid, fut) for mid, fut in waiting.items()),
                return_exceptions=True,
            )
            for metric_id, outcome in zip(waiting, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning(
                        f"In-flight fetch unavailable for batch: {outcome}",
                        extra={"metric_id": metric_id},
                    )
                    failures[metric_id] = MetricSnapshot.failed(
                        by_id[metric_id], str(outcome) or DATA_NOT_AVAILABLE
                    )

        snapshots: List[MetricSnapshot] = []
        for config in configs:
            entry = self._entries.get(config.id)
            if config.id in failures:
                snapshots.append(failures[config.id])
            elif entry is not None:
                snapshots.append(entry.snapshot)
            else:
                snapshots.append(MetricSnapshot.unavailable(config))
        return snapshots

    async def _refresh_batch(
        self, to_fetch: Dict[str, MetricConfig]
    ) -> Dict[str, MetricSnapshot]:
        """Run the composite fetch; return error snapshots for failed ids."""
        futures = {metric_id: self._begin(metric_id) for metric_id in to_fetch}
        self._counters["misses"] += len(to_fetch)
        self._counters["batch_fetches"] += 1

        try:
            fresh = await fetch_metrics_data(list(to_fetch.values()), self.adapter)
        except BaseException as e:
            for metric_id, future in futures.items():
                self._finish(metric_id, future, error=e)
            if not isinstance(e, Exception):
                raise
            logger.error(f"Error fetching metrics batch: {e}")
            self._counters["errors"] += len(futures)
            return {}

        fetched_at = self._clock()
        returned = {s.id: s for s in fresh if s.id in futures}
        succeeded = {
            mid: s for mid, s in returned.items()
            if s.error is None and self._owns(mid, futures[mid])
        }
        failures = {mid: s for mid, s in returned.items() if s.error is not None}

        self._store(succeeded, fetched_at)

        for metric_id, future in futures.items():
            snapshot = returned.get(metric_id)
            if snapshot is None:
                self._finish(metric_id, future, error=FetchError(DATA_NOT_AVAILABLE))
            elif snapshot.error is not None:
                self._finish(metric_id, future, error=FetchError(snapshot.error))
            else:
                self._finish(metric_id, future, result=snapshot)

        self._counters["errors"] += len(futures) - sum(
            1 for s in returned.values() if s.error is None
        )
        for metric_id, snapshot in succeeded.items():
            self._notify(metric_id, snapshot)

        logger.info(
            f"Batch refreshed {len(succeeded)}/{len(futures)} metrics"
        )
        return failures

    # ── Invalidation ──

    def invalidate(self, metric_id: str) -> None:
        """Drop one entry so the next lookup fetches."""
        self._entries.pop(metric_id, None)

    def clear_all(self) -> None:
        self._entries.clear()

    def forget(self, metric_id: str) -> None:
        """Drop everything held for a deleted metric.

        A fetch still running for it completes for its waiters but is not
        written back.
        """
        self.invalidate(metric_id)
        self._inflight.pop(metric_id, None)
        self._subscribers.pop(metric_id, None)

    # ── Introspection ──

    def peek(self, metric_id: str) -> Optional[MetricSnapshot]:
        entry = self._entries.get(metric_id)
        return entry.snapshot if entry else None

    def is_inflight(self, metric_id: str) -> bool:
        return metric_id in self._inflight

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "inflight": len(self._inflight),
            "subscribed_metrics": len(self._subscribers),
            **self._counters,
        }
