"""
SessionClient: one authenticated connection context to the display API.

Owns the aiohttp session and the current session token. Only login() writes
the token; every send() reads the latest value at call time.
"""
from __future__ import annotations

import logging

import aiohttp

from ..const import UPLOAD_TIMEOUT
from ..requests import ApiResponse, make_request
from .auth import get_session_token, get_standard_headers

_LOGGER = logging.getLogger(__name__)


class SessionClient:
    """
    Thin stateful wrapper over make_request().

    A 403 returned by send() is not an error at this layer; it is handed back
    like any other response so the ReauthCoordinator can classify it.
    """

    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        timeout: float = UPLOAD_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._user = user
        self._password = password
        self.timeout = timeout
        self.token: str | None = None
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # The token is attached explicitly; never let the cookie jar add a stale one
            self._session = aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())
            self._owns_session = True
        return self._session

    async def login(self) -> str:
        """
        Create a new session and store its token for all future requests.

        Raises AuthError on rejected credentials, timeout or network failure;
        the previous token is kept in that case.
        """
        token = await get_session_token(
            self._get_session(), self.base_url, self._user, self._password, self.timeout
        )
        self.token = token
        _LOGGER.info("Session created")
        return token

    async def send(
        self,
        method: str,
        path: str,
        payload: dict | None = None,
        token: str | None = None,
    ) -> ApiResponse:
        """
        Issue one request carrying the current (or the explicitly given) token.

        Raises RequestTimeout on deadline and RequestError on transport failure.
        """
        headers = get_standard_headers(token or self.token)
        return await make_request(
            self._get_session(),
            method,
            self.base_url + path,
            headers=headers,
            payload=payload,
            timeout=self.timeout,
        )

    async def close(self) -> None:
        """Close the underlying aiohttp session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
