"""
ReauthCoordinator: transparent session renewal for the display API.

Wraps a SessionClient. When a request comes back 403 the coordinator starts
exactly one login, parks the request (and any other request that hits 403
meanwhile) as a PendingRequest, and replays every parked request with the
token that login produced. If the login fails, every parked request fails
and the queue is emptied: a login that timed out fails them with
RequestTimeout, any other failure with AuthError.

States: IDLE (reauth_in_flight False) -> REAUTHENTICATING -> IDLE.
This is a pure asyncio primitive; it relies on the single-threaded event
loop for exclusive access to the flag, the queue and the client token.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging

from ..const import HTTP_FORBIDDEN, MAX_PENDING_REQUESTS
from ..errors import AuthError, RequestTimeout, SessionExpired
from ..requests import ApiResponse
from .session import SessionClient

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass
class PendingRequest:
    """A request waiting for a fresh session token. Resolved exactly once."""

    method: str
    path: str
    payload: dict | None
    future: asyncio.Future

    def resolve(self, token: str) -> None:
        if not self.future.done():
            self.future.set_result(token)

    def fail(self, exc: Exception) -> None:
        if not self.future.done():
            self.future.set_exception(exc)


class ReauthCoordinator:
    """
    Single-flight re-authentication in front of a SessionClient.

    Replays are sent once; a replay answered with 403 again is returned to
    the caller unchanged instead of starting another login.
    """

    def __init__(self, client: SessionClient, max_pending: int = MAX_PENDING_REQUESTS) -> None:
        self.client = client
        self.max_pending = max_pending
        self.reauth_in_flight: bool = False
        self._pending: list[PendingRequest] = []
        self._login_task: asyncio.Task | None = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def send(self, method: str, path: str, payload: dict | None = None) -> ApiResponse:
        """
        Send a request, renewing the session transparently on 403.

        Any other status is passed through unchanged. RequestTimeout and
        RequestError from the client propagate to the caller.

        Raises:
            AuthError: The login triggered for this request failed.
            RequestTimeout: This request or the login it waited for timed out.
            SessionExpired: The pending queue is full.
        """
        sent_with = self.client.token
        response = await self.client.send(method, path, payload)
        if response.status != HTTP_FORBIDDEN:
            return response

        current = self.client.token
        if not self.reauth_in_flight and current is not None and current != sent_with:
            # A login completed while this request was on the wire
            return await self._replay(method, path, payload, current)

        pending = self._enqueue(method, path, payload)
        if not self.reauth_in_flight:
            _LOGGER.info("No session, creating a new session ...")
            self.reauth_in_flight = True
            self._login_task = asyncio.ensure_future(self._reauthenticate())

        token = await pending.future
        return await self._replay(method, path, payload, token)

    async def close(self) -> None:
        """Abort an in-flight login (failing its queue) and close the client."""
        if self._login_task is not None and not self._login_task.done():
            self._login_task.cancel()
            await asyncio.gather(self._login_task, return_exceptions=True)
        self._login_task = None
        await self.client.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _enqueue(self, method: str, path: str, payload: dict | None) -> PendingRequest:
        if len(self._pending) >= self.max_pending:
            _LOGGER.warning(
                "Re-authentication queue full (%s requests), rejecting %s %s",
                self.max_pending, method, path,
            )
            raise SessionExpired(f"Session expired and {self.max_pending} requests already waiting")
        future = asyncio.get_event_loop().create_future()
        pending = PendingRequest(method, path, payload, future)
        self._pending.append(pending)
        return pending

    def _drain(self) -> list[PendingRequest]:
        """Take the whole queue and return to IDLE in one step."""
        pending, self._pending = self._pending, []
        self.reauth_in_flight = False
        return pending

    async def _reauthenticate(self) -> None:
        try:
            token = await self.client.login()
        except asyncio.CancelledError:
            for request in self._drain():
                request.fail(SessionExpired("Re-authentication cancelled"))
            raise
        except Exception as exc:  # noqa: BLE001
            pending = self._drain()
            _LOGGER.error("Create session error %s! Dropping %s queued requests", exc, len(pending))
            for request in pending:
                request.fail(_login_failure(exc))
            return

        pending = self._drain()
        _LOGGER.debug("Session renewed, replaying %s queued requests", len(pending))
        for request in pending:
            request.resolve(token)

    async def _replay(self, method: str, path: str, payload: dict | None, token: str) -> ApiResponse:
        _LOGGER.debug("Retry with new cookie %s request to %s ...", method, path)
        return await self.client.send(method, path, payload, token=token)


def _login_failure(exc: Exception) -> Exception:
    """Error handed to each parked request when the login behind it failed."""
    if isinstance(exc, RequestTimeout) or isinstance(exc.__cause__, RequestTimeout):
        return RequestTimeout(f"Re-authentication timed out: {exc}")
    return AuthError(f"Re-authentication failed: {exc}")
