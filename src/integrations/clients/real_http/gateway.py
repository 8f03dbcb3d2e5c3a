"""
Remote Lookup Gateway.

Purpose:
- Performs bounded-timeout JSON GET/POST calls against the product backend
- Maps every transport problem onto the typed failures in contracts/errors.py

Implementation notes:
- Uses httpx for async requests
- Pass a shared ``httpx.AsyncClient`` to reuse connections across a fan-out;
  without one, each call opens its own short-lived client
- No retries here; a timeout is just another failed call for the caller

Important:
- Keep this gateway as the ONLY place where product backend HTTP calls are made.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

from src.integrations.contracts.errors import (
    HTTPStatusFailure,
    LookupTimeout,
    NetworkUnavailable,
    ResponseDecodeError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8082"


class LookupGateway:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        max_connections: int = 20,
        slow_call_ms: float = 1000.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("MATRIX_API_BASE", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections
        self.slow_call_ms = slow_call_ms
        self._client = client

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        return await self._request("GET", path, params=params, timeout=timeout)

    async def post_json(self, path: str, body: Any, timeout: Optional[float] = None) -> Any:
        return await self._request("POST", path, json=body, timeout=timeout)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def open_shared_client(self) -> httpx.AsyncClient:
        """Create (once) a pooled client reused by every later call."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                limits=httpx.Limits(max_connections=self.max_connections),
            )
        return self._client

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        url = self._url(path)
        effective_timeout = timeout if timeout is not None else self.timeout_seconds
        headers = {"Accept": "application/json; charset=utf-8"}
        started = time.perf_counter()
        logger.debug("%s %s (timeout=%ss)", method, url, effective_timeout)

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, timeout=effective_timeout, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=effective_timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Request timed out after %ss: %s %s", effective_timeout, method, url)
            raise LookupTimeout(effective_timeout, url=url) from exc
        except httpx.RequestError as exc:
            logger.error(f"Request error connecting to product backend: {exc}")
            raise NetworkUnavailable(f"Cannot reach product backend ({url}): {exc}", url=url) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > self.slow_call_ms:
            logger.warning("Slow backend call: %s %s took %.2fms", method, url, elapsed_ms)
        else:
            logger.debug("%s %s -> %s in %.2fms", method, url, response.status_code, elapsed_ms)

        if not response.is_success:
            logger.error(f"HTTP error from product backend: {response.status_code} {response.text}")
            raise HTTPStatusFailure(response.status_code, response.text, url=url)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Invalid JSON from %s: %s", url, response.text[:200])
            raise ResponseDecodeError(f"Invalid JSON from {url}: {exc}", url=url) from exc
