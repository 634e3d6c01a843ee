"""Tests for single and batch metric evaluation."""

from unittest.mock import AsyncMock

import pytest

from telemon.analyzer.pipeline import build_view, evaluate_metric, fetch_metrics_data
from telemon.connectors.adapter import DataSourceAdapter
from telemon.core.errors import FetchError
from telemon.models.snapshot_models import (
    MetricSnapshot,
    MetricStatus,
    Trend,
    WeatherReading,
)


WEATHER_SOURCE = {
    "type": "weather_api",
    "params": {"city": "Oslo", "metricType": "temperature"},
}


@pytest.fixture
def adapter():
    return AsyncMock(spec=DataSourceAdapter)


# =============================================================================
# SINGLE METRIC
# =============================================================================

class TestEvaluateMetric:
    """Current value selection."""

    @pytest.mark.asyncio
    async def test_current_value_is_last_point(self, adapter, make_config, make_points):
        adapter.fetch.return_value = make_points([10, 20, 30])

        snapshot = await evaluate_metric(make_config(), adapter)

        assert snapshot.current_value == 30
        assert len(snapshot.historical_data) == 3
        assert snapshot.error is None

    @pytest.mark.asyncio
    async def test_empty_series_yields_zero(self, adapter, make_config):
        adapter.fetch.return_value = []

        snapshot = await evaluate_metric(make_config(), adapter)

        assert snapshot.current_value == 0.0
        assert snapshot.historical_data == []

    @pytest.mark.asyncio
    async def test_weather_uses_current_conditions(self, adapter, make_config, make_points):
        adapter.fetch_weather.return_value = WeatherReading(
            current_value=18.5, historical_data=make_points([20, 21])
        )

        snapshot = await evaluate_metric(make_config(source=WEATHER_SOURCE), adapter)

        assert snapshot.current_value == 18.5
        assert [p.value for p in snapshot.historical_data] == [20, 21]
        adapter.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, adapter, make_config):
        adapter.fetch.side_effect = FetchError("API error: 500")

        with pytest.raises(FetchError):
            await evaluate_metric(make_config(), adapter)


# =============================================================================
# BATCH
# =============================================================================

class TestFetchMetricsData:
    """Composite fetch isolates failures per metric."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated_and_order_kept(self, adapter, make_config, make_points):
        async def fake_fetch(source):
            if source.query == "bad":
                raise FetchError("API error: 500")
            if source.query == "boom":
                raise RuntimeError("unexpected shape")
            return make_points([float(len(source.query))])

        adapter.fetch.side_effect = fake_fetch
        configs = [
            make_config("a", source={"type": "database", "query": "ok"}),
            make_config("b", source={"type": "database", "query": "bad"}),
            make_config("c", source={"type": "database", "query": "boom"}),
            make_config("d", source={"type": "database", "query": "fine"}),
        ]

        results = await fetch_metrics_data(configs, adapter)

        assert [r.id for r in results] == ["a", "b", "c", "d"]
        assert results[0].current_value == 2.0
        assert results[1].error == "API error: 500"
        assert results[1].current_value is None
        assert results[2].error == "unexpected shape"
        assert results[3].current_value == 4.0

    @pytest.mark.asyncio
    async def test_empty_input(self, adapter):
        assert await fetch_metrics_data([], adapter) == []
        adapter.fetch.assert_not_called()


# =============================================================================
# VIEW
# =============================================================================

class TestBuildView:
    """Status and trend attached on the way out."""

    def test_view_carries_status_and_trend(self, make_config, make_points):
        config = make_config()
        snapshot = MetricSnapshot(
            id=config.id,
            name=config.name,
            current_value=175,
            historical_data=make_points([171, 172, 173, 174, 175]),
            config=config,
        )

        view = build_view(snapshot)

        assert view.status == MetricStatus.WARNING
        assert view.trend == Trend.RAPIDLY_RISING
        assert view.current_value == 175

    def test_error_snapshot_is_unknown(self, make_config):
        view = build_view(MetricSnapshot.failed(make_config(), "API error: 500"))

        assert view.status == MetricStatus.UNKNOWN
        assert view.trend == Trend.UNKNOWN
        assert view.error == "API error: 500"

    def test_view_serializes_camel_case(self, make_config, make_snapshot):
        view = build_view(make_snapshot(make_config(), 100))
        data = view.model_dump(mode="json", by_alias=True)

        assert data["currentValue"] == 100
        assert data["status"] == "normal"
        assert data["config"]["dataSource"]["type"] == "database"
