"""
LogAllot - HTTP Service Client
==============================

Async HTTP client for talking to collaborator services: the remote
configuration store and the alert webhook. Vendor LLM calls do not go
through this client; each provider adapter owns its wire format.

Usage:
    from shared.utils.http_client import ServiceClient

    async with ServiceClient("https://hooks.example.com") as client:
        response = await client.post("/alerts", data={"message": "..."})
"""

import httpx
from typing import Any, Optional
from dataclasses import dataclass

from shared.utils.logging import get_logger, get_correlation_id

logger = get_logger(__name__)


@dataclass
class ServiceClientConfig:
    """Configuration for the HTTP service client."""
    timeout_seconds: float = 10.0
    user_agent: str = "LogAllot-ServiceClient/1.0"


class ServiceClient:
    """
    Async HTTP client for collaborator services.

    Features:
    - Correlation ID propagation via ``X-Correlation-ID``
    - Lazily created, pooled ``httpx.AsyncClient``
    - Async context manager support

    An existing ``httpx.AsyncClient`` may be injected; it is then owned by
    the caller and not closed by ``close()``.
    """

    def __init__(
        self,
        base_url: str,
        config: Optional[ServiceClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.config = config or ServiceClientConfig()
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=True
            )
        return self._client

    def _build_headers(self, extra_headers: Optional[dict] = None) -> dict:
        """Build request headers with correlation ID."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        if extra_headers:
            headers.update(extra_headers)

        return headers

    def _url(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(
        self,
        path: str = "",
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """
        Make a GET request.

        Args:
            path: Path relative to the base URL
            params: Optional query parameters
            headers: Optional additional headers

        Returns:
            httpx.Response object
        """
        client = await self._get_client()
        url = self._url(path)

        logger.debug(f"GET {url}", extra={"params": list(params.keys()) if params else []})

        response = await client.get(
            url,
            params=params,
            headers=self._build_headers(headers)
        )

        logger.debug(
            f"Response: {response.status_code}",
            extra={"path": path, "status": response.status_code}
        )

        return response

    async def post(
        self,
        path: str = "",
        data: Optional[dict[str, Any]] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """
        Make a POST request with a JSON body.

        Args:
            path: Path relative to the base URL
            data: JSON payload to send
            headers: Optional additional headers

        Returns:
            httpx.Response object
        """
        client = await self._get_client()
        url = self._url(path)

        logger.debug(
            f"POST {url}",
            extra={"payload_keys": list(data.keys()) if data else []}
        )

        response = await client.post(
            url,
            json=data,
            headers=self._build_headers(headers)
        )

        logger.debug(
            f"Response: {response.status_code}",
            extra={"path": path, "status": response.status_code}
        )

        return response

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
