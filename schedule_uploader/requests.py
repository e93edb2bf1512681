"""
Low-level HTTP request library for the display-control API.
This module performs single requests on a caller-owned aiohttp session and
maps transport failures onto the package's error types. Status codes are not
interpreted here; callers decide what a 403 or a 500 means.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging

import aiohttp

from .const import AVAILABILITY_TIMEOUT, UPLOAD_TIMEOUT
from .errors import RequestError, RequestTimeout


_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ApiResponse:
    """Fully buffered HTTP response."""

    status: int
    headers: dict[str, list[str]]
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> list[str]:
        """Return all values of a header, case-insensitively."""
        return self.headers.get(name.lower(), [])


class ApiResponseError(Exception):
    """Exception raised when the API answers with a non-success status."""
    def __init__(self, response: ApiResponse):
        self.response = response
        self.status = response.status
        super().__init__(f"API Error: HTTP {response.status}: {response.text[:200]}")


async def check_api_availability(base_url: str, timeout: int = AVAILABILITY_TIMEOUT) -> bool:
    """
    Check if the display API is reachable by sending a HEAD request.

    Any HTTP answer counts as reachable; an unauthenticated server is
    expected to reject the probe itself.

    Args:
        base_url: API base URL
        timeout: Timeout in seconds for the HEAD request

    Returns:
        True if the server answered, False otherwise
    """
    try:
        timeout_config = aiohttp.ClientTimeout(total=timeout)
        async with aiohttp.ClientSession(timeout=timeout_config) as session:
            async with session.head(base_url) as response:
                _LOGGER.debug("API URL answered HEAD with status %s", response.status)
                return True

    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout while checking API URL %s", base_url)
        return False
    except Exception as e:
        _LOGGER.warning("API URL %s is not reachable: %s", base_url, e)
        return False


async def make_request(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    headers: dict | None = None,
    payload: dict | None = None,
    timeout: float = UPLOAD_TIMEOUT,
) -> ApiResponse:
    """
    Make a single HTTP request. Timeouts are never retried here.

    Args:
        session: Open aiohttp session that carries the connection pool
        method: HTTP method (GET, POST, PUT, HEAD)
        url: Target URL for the request
        headers: HTTP headers dictionary
        payload: JSON payload for POST/PUT requests (optional)
        timeout: Total timeout in seconds

    Returns:
        Buffered ApiResponse, whatever the status code

    Raises:
        RequestTimeout: If the deadline is exceeded
        RequestError: For other network errors
        ValueError: For an unsupported method
    """
    method = method.upper()
    if method not in ("GET", "POST", "PUT", "HEAD"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    timeout_config = aiohttp.ClientTimeout(total=timeout)
    try:
        async with session.request(
            method, url, headers=headers, json=payload, timeout=timeout_config
        ) as response:
            return await _process_response(response, url)

    except (asyncio.TimeoutError, TimeoutError) as e:
        _LOGGER.warning("Timeout on %s request to %s after %ss", method, url, timeout)
        raise RequestTimeout(f"{method} {url} timed out after {timeout}s") from e

    except aiohttp.ClientError as e:
        raise RequestError(f"{method} {url} failed: {e}") from e


async def _process_response(response, url: str) -> ApiResponse:
    """
    Buffer an aiohttp response into an ApiResponse.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        ApiResponse with status, lower-cased multi-value headers and body text
    """
    headers: dict[str, list[str]] = {}
    for name, value in response.headers.items():
        headers.setdefault(name.lower(), []).append(value)

    text = await response.text()
    _LOGGER.debug("%s answered HTTP %s (%s chars)", url, response.status, len(text))
    return ApiResponse(status=response.status, headers=headers, text=text)
