"""TELEMON — Metric Evaluation Pipeline.

Runs the per-metric data flow:
  fetch series → pick current value → MetricSnapshot

and the composite batch fetch used by the cache. Status and trend are attached
on the way out to consumers, never stored.
"""

import asyncio
from typing import List

from telemon.analyzer.status_engine import classify_status
from telemon.analyzer.trend_engine import classify_trend
from telemon.connectors.adapter import DataSourceAdapter
from telemon.core.errors import FetchError
from telemon.core.logging import get_logger
from telemon.models.metric_models import MetricConfig, WeatherSource
from telemon.models.snapshot_models import MetricSnapshot, MetricView, Trend

logger = get_logger("analyzer.pipeline")


async def evaluate_metric(
    config: MetricConfig, adapter: DataSourceAdapter
) -> MetricSnapshot:
    """Fetch and evaluate one metric. Raises FetchError on failure."""
    source = config.data_source

    if isinstance(source, WeatherSource):
        reading = await adapter.fetch_weather(source)
        current_value = reading.current_value
        historical_data = reading.historical_data
    else:
        historical_data = await adapter.fetch(source)
        # Empty series still yields a value, matching the dashboard's contract
        current_value = historical_data[-1].value if historical_data else 0.0

    return MetricSnapshot(
        id=config.id,
        name=config.name,
        current_value=current_value,
        historical_data=historical_data,
        config=config,
    )


async def _evaluate_isolated(
    config: MetricConfig, adapter: DataSourceAdapter
) -> MetricSnapshot:
    try:
        return await evaluate_metric(config, adapter)
    except FetchError as e:
        logger.error(
            f"Error fetching data for metric {config.name}: {e}",
            extra={"metric_id": config.id, "source_type": config.data_source.type},
        )
        return MetricSnapshot.failed(config, str(e) or "Failed to fetch data")
    except Exception as e:
        logger.exception(
            f"Unexpected error evaluating metric {config.name}",
            extra={"metric_id": config.id, "source_type": config.data_source.type},
        )
        return MetricSnapshot.failed(config, str(e) or "Failed to fetch data")


async def fetch_metrics_data(
    configs: List[MetricConfig], adapter: DataSourceAdapter
) -> List[MetricSnapshot]:
    """Evaluate many metrics in one composite call.

    One metric's failure becomes its own error snapshot and never affects the
    others. Results come back in input order.
    """
    if not configs:
        return []
    results = await asyncio.gather(
        *(_evaluate_isolated(config, adapter) for config in configs)
    )
    failed = sum(1 for r in results if r.error)
    logger.info(f"Evaluated {len(results)} metrics ({failed} failed)")
    return list(results)


def build_view(snapshot: MetricSnapshot) -> MetricView:
    """Attach status and trend for presentation."""
    config = snapshot.config
    status = classify_status(
        snapshot.current_value, config.ucl, config.lcl, config.critical_threshold
    )
    if snapshot.historical_data:
        trend = classify_trend(snapshot.historical_data)
    else:
        trend = Trend.UNKNOWN
    return MetricView(
        id=snapshot.id,
        name=snapshot.name,
        current_value=snapshot.current_value,
        historical_data=snapshot.historical_data,
        config=config,
        error=snapshot.error,
        status=status,
        trend=trend,
    )
