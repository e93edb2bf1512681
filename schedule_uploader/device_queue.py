"""
DeviceUploadQueue: one upload at a time per display device.

Uploads to different devices run in parallel. Uploads to the same device
wait for each other, and the next one starts no sooner than `delay` seconds
after the previous one finished.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .const import REQUEST_DELAY

_LOGGER = logging.getLogger(__name__)


class DeviceUploadQueue:

    def __init__(self, delay: float = REQUEST_DELAY) -> None:
        self._delay = delay
        # address → lock held for the duration of one upload
        self._locks: dict[str, asyncio.Lock] = {}
        # address → loop time before which the next upload must not start
        self._ready_at: dict[str, float] = {}

    async def run(self, address: str, coro_factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Await coro_factory() once it is this device's turn.

        The result or exception of the upload is passed through unchanged.
        """
        lock = self._locks.setdefault(address, asyncio.Lock())
        async with lock:
            loop = asyncio.get_event_loop()
            wait = self._ready_at.get(address, 0.0) - loop.time()
            if wait > 0:
                _LOGGER.debug("Waiting %.2fs before the next upload to %s", wait, address)
                await asyncio.sleep(wait)
            try:
                return await coro_factory()
            finally:
                self._ready_at[address] = loop.time() + self._delay
