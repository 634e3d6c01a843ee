"""TELEMON — Data Source HTTP Client.

Shared async client for every provider: retry with backoff on rate limits,
server errors and transport failures. Every failure surfaces as FetchError.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from telemon.config import settings
from telemon.core.errors import FetchError
from telemon.core.logging import get_logger

logger = get_logger("connectors.client")

MAX_RETRIES = 3
RETRY_BASE_DELAY = 1  # seconds


class SourceClient:
    """Async HTTP client used by the data source adapter."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.timeout = timeout or settings.http_timeout_s
        self.retry_base_delay = retry_base_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def request(
        self,
        method: str,
        url: str,
        params: Dict[str, Any] | None = None,
        json: Any = None,
        headers: Dict[str, str] | None = None,
        source_type: str = "",
    ) -> Any:
        """Make a request with retry + rate-limit handling, return decoded JSON."""
        client = await self._get_client()

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                resp = await client.request(
                    method, url, params=params, json=json, headers=headers
                )

                if resp.status_code == 429 and attempt < MAX_RETRIES:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Rate limited (429) by {url}. Retrying in {wait}s "
                        f"(attempt {attempt}/{MAX_RETRIES})",
                        extra={"source_type": source_type, "status_code": 429},
                    )
                    await asyncio.sleep(wait)
                    continue

                resp.raise_for_status()
                return resp.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if attempt < MAX_RETRIES and status >= 500:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Server error {status} from {url}. Retrying in {wait}s",
                        extra={"source_type": source_type, "status_code": status},
                    )
                    await asyncio.sleep(wait)
                    continue
                raise FetchError(
                    f"API error: {status}", status_code=status, source_type=source_type
                ) from e

            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = self.retry_base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Request error: {e}. Retrying in {wait}s",
                        extra={"source_type": source_type},
                    )
                    await asyncio.sleep(wait)
                    continue
                raise FetchError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}",
                    source_type=source_type,
                ) from e

            except ValueError as e:
                raise FetchError(
                    f"Invalid JSON from {url}: {e}", source_type=source_type
                ) from e

        raise FetchError("Max retries exhausted", source_type=source_type)
