"""
Low-level authentication logic for the display-control API.

Responsible for:
- Posting the stored credentials to the login endpoint
- Extracting the session cookie from the login response
- Building the standard headers used by all authenticated API calls
"""
from __future__ import annotations

import logging

import aiohttp

from ..const import LOGIN_PATH, UPLOAD_TIMEOUT
from ..errors import AuthError, RequestError, RequestTimeout
from ..requests import ApiResponse, make_request

_LOGGER = logging.getLogger(__name__)


def extract_session_cookie(response: ApiResponse) -> str | None:
    """
    Return the first Set-Cookie of a login response as a "name=value" pair.

    Cookie attributes (Path, HttpOnly, Expires, ...) are dropped; only the
    pair itself is echoed back to the server.
    """
    cookies = response.header("Set-Cookie")
    if not cookies:
        return None
    pair = cookies[0].split(";", 1)[0].strip()
    return pair or None


async def get_session_token(
    session: aiohttp.ClientSession,
    base_url: str,
    user: str,
    password: str,
    timeout: float = UPLOAD_TIMEOUT,
) -> str:
    """
    Obtain a session token from the display API.

    Sends a POST to /login with the supplied credentials and returns the
    session cookie on success.

    Corresponding CURL command:
    curl -i -X 'POST' 'API_URL/login' \\
      -H 'Content-Type: application/json' \\
      -d '{"user": "USER", "password": "PASSWORD"}'

    Raises:
        AuthError: On rejected credentials, missing cookie, timeout or
            network failure.
    """
    url = base_url.rstrip("/") + LOGIN_PATH
    payload = {"user": user, "password": password}
    try:
        response = await make_request(session, "POST", url, payload=payload, timeout=timeout)
    except RequestTimeout as e:
        raise AuthError("Timeout while creating session") from e
    except RequestError as e:
        raise AuthError(f"Network error while creating session: {e}") from e

    if not response.ok:
        raise AuthError(f"Login rejected with HTTP {response.status}")

    token = extract_session_cookie(response)
    if token is None:
        raise AuthError("Login response carried no session cookie")
    return token


def get_standard_headers(token: str | None) -> dict:
    """
    Build the standard HTTP headers used by all authenticated API requests.

    :param token: Session cookie obtained from :func:`get_session_token`.
        Without a token the request is sent unauthenticated and the server is
        expected to answer 403.
    :return: Dictionary of HTTP headers.
    """
    headers = {"accept": "application/json"}
    if token:
        headers["Cookie"] = token
    return headers
