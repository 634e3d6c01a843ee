"""TELEMON — Data Source Adapter.

One fetch implementation per descriptor kind. Every kind normalizes into a
list of TimeSeriesPoint. Network and parse failures raise FetchError; "no
data" is an empty list, never an error.
"""

import time
from typing import Any, Dict, List

from telemon.config import settings
from telemon.connectors.client import SourceClient
from telemon.connectors.transformer import (
    infer_kibana_shape,
    project_weather,
    transform_api,
    transform_database,
    transform_forecast,
    transform_kibana,
)
from telemon.core.errors import FetchError
from telemon.core.logging import get_logger
from telemon.models.metric_models import (
    ApiSource,
    DatabaseSource,
    KibanaSource,
    UnrecognizedSource,
    WeatherSource,
)
from telemon.models.snapshot_models import TimeSeriesPoint, WeatherReading

logger = get_logger("connectors.adapter")

KIBANA_HEADERS = {"kbn-xsrf": "true", "Content-Type": "application/json"}


class DataSourceAdapter:
    """Fetch time series from any configured data source."""

    def __init__(self, client: SourceClient | None = None):
        self.client = client or SourceClient()

    async def close(self) -> None:
        await self.client.close()

    async def fetch(self, source) -> List[TimeSeriesPoint]:
        """Fetch the series for one descriptor."""
        started = time.perf_counter()

        if isinstance(source, KibanaSource):
            points = await self._fetch_kibana(source)
        elif isinstance(source, DatabaseSource):
            points = await self._fetch_database(source)
        elif isinstance(source, ApiSource):
            points = await self._fetch_api(source)
        elif isinstance(source, WeatherSource):
            points = (await self.fetch_weather(source)).historical_data
        elif isinstance(source, UnrecognizedSource):
            logger.warning(
                f"Unknown data source type: {source.type}",
                extra={"source_type": source.type},
            )
            return []
        else:
            raise TypeError(f"Not a data source descriptor: {source!r}")

        logger.debug(
            f"Fetched {len(points)} points",
            extra={
                "source_type": source.type,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return points

    # ── Kibana ──

    async def _fetch_kibana(self, source: KibanaSource) -> List[TimeSeriesPoint]:
        url = f"{settings.kibana_url}{settings.kibana_api_path}"
        body = {
            "query": source.query,
            "time": {"from": f"now-{settings.kibana_time_range}", "to": "now"},
        }
        raw = await self.client.request(
            "POST", url, json=body, headers=KIBANA_HEADERS, source_type=source.type
        )
        if not isinstance(raw, dict) or raw.get("hits") is None:
            raise FetchError(
                "Invalid response format from Kibana", source_type=source.type
            )

        shape = source.response_shape or infer_kibana_shape(source.query)
        return transform_kibana(raw, shape)

    # ── Database ──

    async def _fetch_database(self, source: DatabaseSource) -> List[TimeSeriesPoint]:
        url = f"{settings.database_api_url}{settings.database_api_path}"
        raw = await self.client.request(
            "POST", url, json={"query": source.query}, source_type=source.type
        )
        if raw is None:
            raise FetchError(
                "Invalid response from database API", source_type=source.type
            )
        return transform_database(raw)

    # ── Generic API ──

    async def _fetch_api(self, source: ApiSource) -> List[TimeSeriesPoint]:
        method = source.method.upper()
        body = source.body if method in ("POST", "PUT") else None
        raw = await self.client.request(
            method,
            source.query,
            json=body,
            headers={"Content-Type": "application/json"},
            source_type=source.type,
        )
        return transform_api(raw)

    # ── Weather ──

    async def _weather_get(self, endpoint: str, city: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": city, "units": settings.weather_units}
        if settings.weather_api_key:
            params["appid"] = settings.weather_api_key
        raw = await self.client.request(
            "GET",
            f"{settings.weather_api_url}/{endpoint}",
            params=params,
            source_type="weather_api",
        )
        if not isinstance(raw, dict):
            raise FetchError(
                f"Invalid {endpoint} response for {city}", source_type="weather_api"
            )
        return raw

    async def fetch_weather(self, source: WeatherSource) -> WeatherReading:
        """Current conditions become the value, forecast entries the history."""
        city = source.params.city
        metric_type = source.params.metric_type

        current = await self._weather_get("weather", city)
        forecast = await self._weather_get("forecast", city)

        return WeatherReading(
            current_value=project_weather(current, metric_type),
            historical_data=transform_forecast(forecast, metric_type),
        )
