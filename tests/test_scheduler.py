"""Tests for the periodic refresh job."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from telemon.cache.metrics_cache import MetricsCache
from telemon.config import settings
from telemon.scheduler.jobs import REFRESH_JOB_ID, RefreshScheduler


@pytest.fixture
def cache():
    return AsyncMock(spec=MetricsCache)


@pytest.fixture
def refresher(cache):
    return RefreshScheduler(cache)


class TestRefreshJob:
    """One batch refresh per tick."""

    @pytest.mark.asyncio
    async def test_refreshes_configured_metrics(self, refresher, cache, make_config, make_snapshot):
        configs = [make_config("a"), make_config("b")]
        snapshots = [make_snapshot(c) for c in configs]
        cache.get_all_metrics.return_value = snapshots
        refresher.configs = configs

        await refresher.refresh_job()

        cache.get_all_metrics.assert_awaited_once_with(configs)
        assert refresher.latest_snapshots == snapshots
        assert refresher.last_run_at is not None

    @pytest.mark.asyncio
    async def test_no_metrics_is_a_no_op(self, refresher, cache):
        await refresher.refresh_job()

        cache.get_all_metrics.assert_not_awaited()
        assert refresher.last_run_at is None

    @pytest.mark.asyncio
    async def test_errors_are_logged_not_raised(self, refresher, cache, make_config):
        cache.get_all_metrics.side_effect = RuntimeError("boom")
        refresher.configs = [make_config()]

        await refresher.refresh_job()

        assert refresher.last_run_at is None


class TestArming:
    """The interval job follows interval and metric set changes."""

    @pytest.mark.asyncio
    async def test_start_arms_interval_job(self, refresher, make_config):
        refresher.start([make_config()], 30000)

        job = refresher.scheduler.get_job(REFRESH_JOB_ID)
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=30)
        refresher.stop()

    @pytest.mark.asyncio
    async def test_set_interval_replaces_trigger(self, refresher, make_config):
        refresher.start([make_config()], 30000)

        refresher.set_interval(10000)

        jobs = refresher.scheduler.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].trigger.interval == timedelta(seconds=10)
        assert refresher.interval_ms == 10000
        refresher.stop()

    @pytest.mark.asyncio
    async def test_set_metrics_keeps_single_job(self, refresher, make_config):
        refresher.start([make_config("a")], 30000)

        refresher.set_metrics([make_config("a"), make_config("b")])

        assert len(refresher.scheduler.get_jobs()) == 1
        assert [c.id for c in refresher.configs] == ["a", "b"]
        refresher.stop()

    def test_changes_before_start_only_record_state(self, refresher, make_config):
        refresher.set_interval(15000)
        refresher.set_metrics([make_config()])

        assert refresher.interval_ms == 15000
        assert not refresher.scheduler.running

    @pytest.mark.asyncio
    async def test_disabled_scheduler_never_starts(self, refresher, monkeypatch, make_config):
        monkeypatch.setattr(settings, "scheduler_enabled", False)

        refresher.start([make_config()], 30000)

        assert not refresher.scheduler.running
        assert refresher.interval_ms == 30000

    @pytest.mark.asyncio
    async def test_stop(self, refresher, make_config):
        refresher.start([make_config()], 30000)

        refresher.stop()

        assert not refresher.scheduler.running
