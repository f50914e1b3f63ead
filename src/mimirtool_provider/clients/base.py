from __future__ import annotations

import ssl
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mimirtool_provider.core.errors import MimirClientError, ResourceNotFoundError

logger = structlog.get_logger()


class RetryableHTTPError(Exception):
    """HTTP errors that should be retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


class BaseHTTPClient:
    """Base HTTP client with retry logic and uniform error mapping."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        verify: ssl.SSLContext | bool = True,
        auth: tuple[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor
        self._verify = verify
        self._auth = auth

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        content: str | bytes | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Execute HTTP request with retry; returns the successful response."""
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RetryableHTTPError),
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_factor, max=30),
                reraise=True,
            ):
                with attempt:
                    response = await self._send(
                        method, url, content=content, params=params, headers=req_headers
                    )
        except RetryableHTTPError as exc:
            raise MimirClientError(
                f"{method} {path} failed after {self._max_retries} attempts: {exc}",
                {"method": method, "path": path},
                status_code=exc.status_code,
            ) from exc

        return self._check_response(method, path, response)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        content: str | bytes | None,
        params: dict[str, Any] | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, verify=self._verify) as client:
                response = await client.request(
                    method,
                    url,
                    content=content,
                    params=params,
                    headers=headers,
                    auth=self._auth,  # type: ignore[arg-type]
                )
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("http_unexpected_error", method=method, url=url, error=str(exc))
            raise MimirClientError(f"HTTP error from Mimir: {exc}", {"method": method, "url": url}) from exc

        if is_retryable_status(response.status_code):
            logger.warning(
                "http_retryable_error",
                status=response.status_code,
                method=method,
                url=url,
            )
            raise RetryableHTTPError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                response.status_code,
            )
        return response

    @staticmethod
    def _check_response(method: str, path: str, response: httpx.Response) -> httpx.Response:
        if response.status_code == 404:
            raise ResourceNotFoundError(
                "requested resource not found",
                {"method": method, "path": path},
                status_code=404,
            )
        if response.status_code >= 300:
            error_text = response.text[:200] if response.text else "Unknown error"
            logger.error(
                "http_permanent_error",
                status=response.status_code,
                method=method,
                path=path,
            )
            raise MimirClientError(
                f"server returned HTTP status {response.status_code}: {error_text}",
                {"method": method, "path": path},
                status_code=response.status_code,
            )
        return response
