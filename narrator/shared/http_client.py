"""
HTTP client utilities for provider and inter-service communication.
"""

import asyncio
from typing import Any

import aiohttp


class AsyncHTTPClient:
    """Async HTTP client for JSON APIs."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize HTTP client."""
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = headers or {}
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "AsyncHTTPClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        if self.session:
            await self.session.close()
            self.session = None

    def _url(self, path: str) -> str:
        if self.base_url and not path.startswith(("http://", "https://")):
            return f"{self.base_url}/{path.lstrip('/')}"
        return path

    @staticmethod
    async def _prepare_request(coro_or_ctx: Any) -> Any:
        """Normalize aiohttp request result to an async context manager."""
        if asyncio.iscoroutine(coro_or_ctx):
            return await coro_or_ctx
        return coro_or_ctx

    @staticmethod
    async def _ensure_response_ok(response: Any) -> None:
        """Raise ``ClientResponseError`` carrying the response body for non-2xx statuses."""
        status = getattr(response, "status", 200)
        if isinstance(status, int) and status >= 400:
            body = await response.text()
            raise aiohttp.ClientResponseError(
                request_info=response.request_info,
                history=getattr(response, "history", ()),
                status=status,
                message=body,
            )
        result = response.raise_for_status()
        if asyncio.iscoroutine(result):
            await result

    async def get(self, path: str, headers: dict[str, Any] | None = None) -> dict[str, Any]:
        """Perform GET request."""
        if not self.session:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")

        request_ctx = await self._prepare_request(self.session.get(self._url(path), headers=headers))
        async with request_ctx as response:
            await self._ensure_response_ok(response)
            return await response.json()

    async def post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform POST request with a JSON body."""
        if not self.session:
            raise RuntimeError("HTTP client not initialized. Use async context manager.")

        request_ctx = await self._prepare_request(
            self.session.post(self._url(path), json=data, headers=headers)
        )
        async with request_ctx as response:
            await self._ensure_response_ok(response)
            return await response.json()
