"""TELEMON — Provider Response → TimeSeriesPoint Transformer.

Each provider answers in its own shape. These functions map raw payloads into
the common point list. None of them raise for "no data"; a current weather
payload without its tracked field is a parse failure and raises FetchError.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from telemon.models.metric_models import (
    KibanaResponseShape,
    WeatherMetricType,
)
from telemon.models.snapshot_models import TimeSeriesPoint
from telemon.core.errors import FetchError
from telemon.core.logging import get_logger

logger = get_logger("connectors.transformer")

# Fields tried in order for a database row value
DATABASE_VALUE_FIELDS = ("value", "average", "count")


def _safe_float(value: Any) -> float:
    """Safely convert a value to float."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Any, default: datetime) -> datetime:
    """Parse an ISO string, epoch number or datetime. Falls back to ``default``."""
    if raw is None or raw == "":
        return default
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, (int, float)):
        # Epoch milliseconds vs seconds
        seconds = raw / 1000.0 if raw > 1e12 else float(raw)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable timestamp {raw!r}, using fetch time")
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _point(value: Any, timestamp: Any = None, fetched_at: Optional[datetime] = None,
           metadata: Optional[Dict[str, Any]] = None) -> TimeSeriesPoint:
    fetched_at = fetched_at or _now()
    return TimeSeriesPoint(
        timestamp=parse_timestamp(timestamp, fetched_at),
        value=_safe_float(value),
        metadata=metadata,
    )


# ─────────────────────────────────────────────
# KIBANA
# ─────────────────────────────────────────────


def infer_kibana_shape(query: str) -> KibanaResponseShape:
    """Legacy rule: pick the response shape from the query text."""
    if "avg(" in query:
        return KibanaResponseShape.AGGREGATION
    if "count(" in query:
        return KibanaResponseShape.COUNT
    return KibanaResponseShape.DOCUMENTS


def transform_kibana(
    raw: Dict[str, Any],
    shape: KibanaResponseShape,
    fetched_at: Optional[datetime] = None,
) -> List[TimeSeriesPoint]:
    fetched_at = fetched_at or _now()

    if shape == KibanaResponseShape.AGGREGATION:
        average = (raw.get("aggregations") or {}).get("average")
        if isinstance(average, dict):
            return [_point(average.get("value") or 0, fetched_at=fetched_at)]
        return [_point(0, fetched_at=fetched_at)]

    if shape == KibanaResponseShape.COUNT:
        total = (raw.get("hits") or {}).get("total")
        value = total.get("value", 0) if isinstance(total, dict) else 0
        return [_point(value, fetched_at=fetched_at)]

    hits = (raw.get("hits") or {}).get("hits")
    if not isinstance(hits, list):
        return [_point(0, fetched_at=fetched_at)]

    points: List[TimeSeriesPoint] = []
    for hit in hits:
        source = hit.get("_source") or {}
        points.append(
            _point(
                source.get("value") or 0,
                timestamp=source.get("@timestamp"),
                fetched_at=fetched_at,
                metadata=source,
            )
        )
    return points


# ─────────────────────────────────────────────
# DATABASE
# ─────────────────────────────────────────────


def _row_value(row: Dict[str, Any]) -> Any:
    for field in DATABASE_VALUE_FIELDS:
        if row.get(field) is not None:
            return row[field]
    return 0


def transform_database(
    raw: Any, fetched_at: Optional[datetime] = None
) -> List[TimeSeriesPoint]:
    fetched_at = fetched_at or _now()

    if isinstance(raw, list):
        return [
            _point(_row_value(row), timestamp=row.get("timestamp"), fetched_at=fetched_at)
            for row in raw
            if isinstance(row, dict)
        ]
    if isinstance(raw, dict) and raw.get("value") is not None:
        return [_point(raw["value"], fetched_at=fetched_at)]

    # Unknown format
    return [_point(0, fetched_at=fetched_at)]


# ─────────────────────────────────────────────
# GENERIC API
# ─────────────────────────────────────────────


def transform_api(raw: Any, fetched_at: Optional[datetime] = None) -> List[TimeSeriesPoint]:
    fetched_at = fetched_at or _now()

    if isinstance(raw, list):
        return [
            _point(item.get("value"), timestamp=item.get("timestamp"), fetched_at=fetched_at)
            for item in raw
            if isinstance(item, dict) and "value" in item
        ]
    if isinstance(raw, dict) and "value" in raw:
        return [_point(raw["value"], timestamp=raw.get("timestamp"), fetched_at=fetched_at)]
    return []


# ─────────────────────────────────────────────
# WEATHER
# ─────────────────────────────────────────────


WEATHER_FIELDS = {
    WeatherMetricType.TEMPERATURE: ("main", "temp"),
    WeatherMetricType.HUMIDITY: ("main", "humidity"),
    WeatherMetricType.WIND_SPEED: ("wind", "speed"),
    WeatherMetricType.PRESSURE: ("main", "pressure"),
}


def _weather_field(payload: Dict[str, Any], metric_type: WeatherMetricType) -> Optional[float]:
    block, field = WEATHER_FIELDS[metric_type]
    section = payload.get(block)
    if not isinstance(section, dict) or section.get(field) is None:
        return None
    try:
        return float(section[field])
    except (TypeError, ValueError):
        return None


def project_weather(payload: Dict[str, Any], metric_type: WeatherMetricType) -> float:
    """Pick the tracked field out of a current-conditions payload.

    Raises FetchError when the field is missing or not numeric.
    """
    value = _weather_field(payload, metric_type)
    if value is None:
        block, field = WEATHER_FIELDS[metric_type]
        raise FetchError(
            f"Weather response has no {block}.{field}", source_type="weather_api"
        )
    return value


def transform_forecast(
    raw: Dict[str, Any],
    metric_type: WeatherMetricType,
    fetched_at: Optional[datetime] = None,
) -> List[TimeSeriesPoint]:
    """Forecast entries become history. Entries without the field are skipped."""
    fetched_at = fetched_at or _now()
    points: List[TimeSeriesPoint] = []
    for item in raw.get("list") or []:
        if not isinstance(item, dict):
            continue
        value = _weather_field(item, metric_type)
        if value is None:
            continue
        points.append(
            _point(value, timestamp=item.get("dt_txt") or item.get("dt"), fetched_at=fetched_at)
        )
    return points
