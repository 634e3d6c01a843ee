"""TELEMON — Dashboard Metric Routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from telemon.analyzer.pipeline import build_view
from telemon.core.errors import FetchError, FetchTimeoutError
from telemon.core.logging import get_logger
from telemon.models.snapshot_models import MetricView
from telemon.services import Services, get_services

logger = get_logger("api.metrics")

router = APIRouter(prefix="/metrics", tags=["Metrics"])


@router.get("", response_model=List[MetricView])
async def list_metrics(services: Services = Depends(get_services)):
    """Current value, status, trend and history for every configured metric.

    Stale metrics are refreshed with one batch fetch; metrics with no data
    come back with an ``error`` instead of failing the whole response.
    """
    configs = await services.store.list()
    snapshots = await services.cache.get_all_metrics(configs)
    return [build_view(s) for s in snapshots]


@router.get("/{metric_id}", response_model=MetricView)
async def get_metric(metric_id: str, services: Services = Depends(get_services)):
    """Evaluate a single metric, served from cache while fresh."""
    config = await services.store.get(metric_id)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {metric_id}")
    try:
        snapshot = await services.cache.get_metric(config)
    except FetchTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except FetchError as e:
        logger.error(f"Fetch failed: {e}", extra={"metric_id": metric_id})
        raise HTTPException(status_code=502, detail=f"Fetch failed: {str(e)}")
    return build_view(snapshot)


@router.post("/{metric_id}/invalidate")
async def invalidate_metric(metric_id: str, services: Services = Depends(get_services)):
    """Force the next read of this metric to fetch."""
    services.cache.invalidate(metric_id)
    return {"status": "success", "id": metric_id}
