"""TELEMON — Remote Config Backend Client.

Thin async client over the backend's config endpoints. Read failures raise
ConfigLoadError, write failures ConfigPersistError; the ConfigStore turns both
into local fallbacks.
"""

from typing import Any, Dict, List, Optional

import httpx

from telemon.config import settings
from telemon.core.errors import ConfigLoadError, ConfigPersistError
from telemon.core.logging import get_logger

logger = get_logger("store.remote")


class RemoteConfigClient:
    """Async HTTP client for the metrics-config backend."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.config_api_url).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self, method: str, path: str, json: Any = None, read: bool = False
    ) -> Any:
        client = await self._get_client()
        error_cls = ConfigLoadError if read else ConfigPersistError
        try:
            resp = await client.request(method, path, json=json)
            resp.raise_for_status()
            return resp.json() if resp.content else None
        except httpx.HTTPStatusError as e:
            raise error_cls(
                f"{method} {path} failed with {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise error_cls(f"{method} {path} failed: {e}") from e

    # ── Metric definitions ──

    async def fetch_metrics_config(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/metrics-config", read=True)
        if not isinstance(data, list):
            raise ConfigLoadError("metrics-config response is not a list")
        return data

    async def save_metrics_config(self, configs: List[Dict[str, Any]]) -> Any:
        return await self._request("POST", "/metrics-config", json=configs)

    async def add_metric(self, metric: Dict[str, Any]) -> Any:
        return await self._request("POST", "/metrics", json=metric)

    async def update_metric(self, metric_id: str, updates: Dict[str, Any]) -> Any:
        return await self._request("PUT", f"/metrics/{metric_id}", json=updates)

    async def delete_metric(self, metric_id: str) -> Any:
        return await self._request("DELETE", f"/metrics/{metric_id}")

    async def delete_all_metrics(self) -> Any:
        return await self._request("DELETE", "/metrics")

    # ── Settings ──

    async def get_refresh_interval(self) -> int:
        data = await self._request("GET", "/settings/refresh-interval", read=True)
        if isinstance(data, dict):
            data = data.get("interval")
        try:
            return int(data)
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"Invalid refresh interval payload: {data!r}") from e

    async def save_refresh_interval(self, interval_ms: int) -> Any:
        return await self._request(
            "POST", "/settings/refresh-interval", json={"interval": interval_ms}
        )
