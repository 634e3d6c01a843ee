"""TELEMON — Admin Input Validation.

Field-level checks on a metric definition before it reaches the store.
Keys use the dotted camelCase paths the admin form binds to.
"""

from typing import Any, Dict

from telemon.config import settings
from telemon.core.errors import MetricValidationError
from telemon.models.metric_models import SourceType, WeatherMetricType

QUERY_SOURCES = {SourceType.KIBANA.value, SourceType.DATABASE.value, SourceType.API.value}
WEATHER_METRIC_TYPES = {m.value for m in WeatherMetricType}


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or value is None or value == "":
        return False
    try:
        float(value)
    except (TypeError, ValueError):
        return False
    return True


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_refresh_interval(value: Any, field: str = "refreshInterval") -> Dict[str, str]:
    minimum = settings.min_refresh_interval_ms
    if not _is_number(value) or float(value) < minimum:
        return {field: f"Refresh interval must be at least {minimum} ms"}
    return {}


def validate_metric(payload: Dict[str, Any]) -> Dict[str, str]:
    """Return ``{field: message}`` for every problem found. Empty means valid."""
    errors: Dict[str, str] = {}

    for field, label in (("name", "Name"), ("description", "Description"), ("unit", "Unit")):
        if _blank(payload.get(field)):
            errors[field] = f"{label} is required"

    ucl, lcl = payload.get("ucl"), payload.get("lcl")
    if not _is_number(ucl):
        errors["ucl"] = "UCL must be a number"
    if not _is_number(lcl):
        errors["lcl"] = "LCL must be a number"
    if "ucl" not in errors and "lcl" not in errors and float(lcl) >= float(ucl):
        errors["lcl"] = "LCL must be less than UCL"
        errors["ucl"] = "UCL must be greater than LCL"

    critical = payload.get("criticalThreshold")
    if critical is not None and critical != "" and not _is_number(critical):
        errors["criticalThreshold"] = "Critical threshold must be a number"

    source = payload.get("dataSource")
    if not isinstance(source, dict):
        errors["dataSource"] = "Data source is required"
        return errors

    source_type = source.get("type")
    if source_type in QUERY_SOURCES:
        if _blank(source.get("query")):
            errors["dataSource.query"] = "Query is required"
    elif source_type == SourceType.WEATHER_API.value:
        params = source.get("params") or {}
        if _blank(params.get("city")):
            errors["dataSource.params.city"] = "City is required"
        if _blank(params.get("metricType")):
            errors["dataSource.params.metricType"] = "Weather metric type is required"
        elif params.get("metricType") not in WEATHER_METRIC_TYPES:
            errors["dataSource.params.metricType"] = (
                f"Weather metric type must be one of {sorted(WEATHER_METRIC_TYPES)}"
            )
    elif _blank(source_type):
        errors["dataSource.type"] = "Data source type is required"
    else:
        errors["dataSource.type"] = f"Unsupported data source type: {source_type}"

    if "refreshInterval" in source:
        errors.update(
            validate_refresh_interval(
                source.get("refreshInterval"), field="dataSource.refreshInterval"
            )
        )

    return errors


def ensure_valid_metric(payload: Dict[str, Any]) -> None:
    """Raise MetricValidationError unless ``payload`` is a valid metric."""
    errors = validate_metric(payload)
    if errors:
        raise MetricValidationError(errors)


def ensure_valid_refresh_interval(value: Any) -> int:
    errors = validate_refresh_interval(value)
    if errors:
        raise MetricValidationError(errors)
    return int(value)
