"""TELEMON — Admin Config Routes.

Create / edit / delete metric definitions and the refresh interval. Input is
validated before anything reaches the store; a backend outage is reported as a
warning on an otherwise successful response.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from telemon.core.errors import DuplicateMetricError, MetricValidationError
from telemon.core.logging import get_logger
from telemon.core.validation import ensure_valid_metric, ensure_valid_refresh_interval
from telemon.models.metric_models import MetricConfig
from telemon.models.store_models import StoreResult
from telemon.services import Services, get_services

logger = get_logger("api.config")

router = APIRouter(tags=["Admin"])


# ── Request / Response Models ──


class RefreshIntervalBody(BaseModel):
    """Request body for POST /settings/refresh-interval."""

    interval: Any
    """Milliseconds, at least 5000."""


class RefreshIntervalResponse(BaseModel):
    interval: int


def _reject(e: MetricValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"errors": e.errors})


def _check_metric(payload: Dict[str, Any]) -> None:
    try:
        ensure_valid_metric(payload)
        MetricConfig.model_validate({"id": "_", **payload})
    except MetricValidationError as e:
        raise _reject(e)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        raise HTTPException(status_code=422, detail={"errors": errors})


def _log_result(action: str, result: StoreResult) -> None:
    if result.warning:
        logger.warning(f"{action}: {result.warning}", extra={"metric_id": result.id})


# ── Metric definitions ──


@router.get("/metrics-config")
async def list_metric_configs(services: Services = Depends(get_services)):
    """All metric definitions."""
    return [c.to_wire() for c in await services.store.list()]


@router.post("/metrics-config", response_model=StoreResult, status_code=201)
async def create_metric_config(
    payload: Dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
):
    """Add a metric definition. Returns the generated id; 409 if the id is taken."""
    _check_metric(payload)
    try:
        result = await services.store.create(payload)
    except DuplicateMetricError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to save metric")
    _log_result("create", result)
    await services.reload_metrics()
    return result


@router.put("/metrics-config/{metric_id}", response_model=StoreResult)
async def update_metric_config(
    metric_id: str,
    updates: Dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
):
    """Shallow-merge ``updates`` into an existing definition."""
    current = await services.store.get(metric_id)
    if current is None:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {metric_id}")

    updates = {k: v for k, v in updates.items() if k != "id"}
    _check_metric({**current.to_wire(), **updates})

    result = await services.store.update(metric_id, updates)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to update metric")
    _log_result("update", result)
    services.cache.invalidate(metric_id)
    await services.reload_metrics()
    return result


@router.delete("/metrics-config/{metric_id}", response_model=StoreResult)
async def delete_metric_config(
    metric_id: str, services: Services = Depends(get_services)
):
    result = await services.store.delete(metric_id)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to delete metric")
    _log_result("delete", result)
    services.cache.forget(metric_id)
    await services.reload_metrics()
    return result


@router.delete("/metrics-config", response_model=StoreResult)
async def delete_all_metric_configs(services: Services = Depends(get_services)):
    result = await services.store.delete_all()
    _log_result("delete_all", result)
    services.cache.clear_all()
    await services.reload_metrics()
    return result


# ── Settings ──


@router.get("/settings/refresh-interval", response_model=RefreshIntervalResponse)
async def get_refresh_interval(services: Services = Depends(get_services)):
    return RefreshIntervalResponse(interval=await services.store.get_refresh_interval())


@router.post("/settings/refresh-interval", response_model=StoreResult)
async def set_refresh_interval(
    body: RefreshIntervalBody, services: Services = Depends(get_services)
):
    """Change how often the dashboard batch refresh runs."""
    try:
        interval = ensure_valid_refresh_interval(body.interval)
    except MetricValidationError as e:
        raise _reject(e)
    result = await services.store.set_refresh_interval(interval)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to save refresh interval")
    _log_result("refresh_interval", result)
    services.scheduler.set_interval(interval)
    return result
