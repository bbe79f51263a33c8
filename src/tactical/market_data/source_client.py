"""HTTP client for the user-configured indicator sources.

Up to five endpoints are fetched concurrently with asyncio.gather, each
wrapped in its own timeout. A source that is unconfigured, has a malformed URL, times out,
returns a non-2xx status or a non-JSON-object body yields None; no
failure escapes ``fetch_all``.
"""

import asyncio
from typing import Any

import httpx

from tactical.config import DataSourceConfig
from tactical.exceptions import SourceFetchError
from tactical.logging import get_logger

logger = get_logger(__name__)

SOURCE_NAMES = ("rsi", "macd", "perp", "volume", "price")


class IndicatorSourceClient:
    """Fetches raw JSON payloads from the configured indicator endpoints.

    Args:
        config: Endpoints and optional bearer token.
        timeout_seconds: Per-source deadline.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        config: DataSourceConfig,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def config(self) -> DataSourceConfig:
        return self._config

    def update_config(self, config: DataSourceConfig) -> None:
        """Swap endpoints; takes effect on the next fetch."""
        self._config = config
        logger.info(
            "data_sources_updated",
            configured=[name for name, url in config.endpoints().items() if url.strip()],
            has_api_key=bool(config.api_key),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def fetch_all(self) -> dict[str, dict[str, Any] | None]:
        """Fetch every configured source concurrently.

        Returns:
            Payload per source name; None for unconfigured or failed sources.
        """
        if not self._config.is_configured():
            return dict.fromkeys(SOURCE_NAMES)

        endpoints = self._config.endpoints()
        async with httpx.AsyncClient(
            headers=self._headers(),
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            results = await asyncio.gather(
                *(self._fetch_safe(client, name, endpoints[name]) for name in SOURCE_NAMES)
            )
        return dict(zip(SOURCE_NAMES, results))

    async def _fetch_safe(
        self, client: httpx.AsyncClient, name: str, url: str
    ) -> dict[str, Any] | None:
        if not url.strip():
            return None
        try:
            return await asyncio.wait_for(self._fetch(client, url), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("source_fetch_timeout", source=name, timeout=self._timeout)
            return None
        except SourceFetchError as exc:
            logger.warning("source_fetch_failed", source=name, error=str(exc))
            return None

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> dict[str, Any]:
        """GET one endpoint and decode its JSON object body.

        Raises:
            SourceFetchError: On a malformed URL, transport error, HTTP error
                status, or a body that is not a JSON object.
        """
        try:
            response = await client.get(url.strip())
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise SourceFetchError(f"{type(exc).__name__}: {exc}") from exc

        if response.is_error:
            raise SourceFetchError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceFetchError("response body is not JSON") from exc

        if not isinstance(payload, dict):
            raise SourceFetchError("response body is not a JSON object")
        return payload
