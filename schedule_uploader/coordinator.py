"""
UploadOrchestrator for the schedule uploader.

Responsibilities:
- Own the calendar sources and their RoomSchedule state for the process lifetime.
- Run one polling cycle per tick: fetch every feed concurrently, rebuild each
  schedule, and push today's schedules when any fingerprint changed.
- Resolve rooms to display devices and fan uploads out through the
  DeviceUploadQueue and the ReauthCoordinator.
- Remember upload timeouts so the next cycle pushes everything again.
- Keep cycles from overlapping: a tick that fires mid-cycle is skipped.
"""
from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import logging
from typing import Any, Callable, Mapping

import aiohttp

from .api.feeds import fetch_feed
from .api.reauth import ReauthCoordinator
from .api.session import SessionClient
from .api.uploads import upload_schedule
from .config import calendar_sources
from .const import POLL_INTERVAL
from .coordinator_data import CycleReport
from .device_queue import DeviceUploadQueue
from .models import CalendarEvent, CalendarSource, DeviceTarget, RoomSchedule
from .schedule_builder import apply_schedule, events_for_date, format_date, sort_by_start

__all__ = ["CycleReport", "DeviceUploadQueue", "UploadOrchestrator"]

_LOGGER = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Drives the fetch-build-detect-push cycle.

    needs_update carries a pending retry from one cycle to the next; it is
    set only by upload timeouts and cleared whenever a push starts.
    """

    def __init__(
        self,
        api: ReauthCoordinator,
        sources: list[CalendarSource],
        locations: Mapping[str, list[str]],
        feed_url_template: str,
        feed_user: str,
        feed_password: str,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        queue: DeviceUploadQueue | None = None,
    ) -> None:
        self.api = api
        self.schedules: list[RoomSchedule] = [RoomSchedule(source) for source in sources]
        self.locations = {str(room): list(addresses) for room, addresses in locations.items()}
        self._feed_url_template = feed_url_template
        self._feed_user = feed_user
        self._feed_password = feed_password
        self._clock = clock
        self._queue = queue or DeviceUploadQueue()
        self._feed_session: aiohttp.ClientSession | None = None

        self.needs_update: bool = False
        self._cycle_running: bool = False
        self._cycle_tasks: set[asyncio.Task] = set()
        self._fatal: BaseException | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "UploadOrchestrator":
        """Build the full client stack from a validated configuration dict."""
        client = SessionClient(
            config["API_URL"], config["API_USER"], config["API_PASS"],
            timeout=config["UPLOAD_TIMEOUT"],
        )
        return cls(
            ReauthCoordinator(client),
            calendar_sources(config),
            config["LOCATIONS"],
            config["ICAL_URL"],
            config["ICAL_USER"],
            config["ICAL_PASS"],
        )

    # ------------------------------------------------------------------
    # Polling cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport:
        """Run one polling cycle, or return a skipped report if one is in progress."""
        if self._cycle_running:
            _LOGGER.debug("Previous cycle still running, skipping this tick")
            return CycleReport(skipped=True)

        self._cycle_running = True
        try:
            return await self._run_cycle()
        finally:
            self._cycle_running = False

    async def _run_cycle(self) -> CycleReport:
        today = self._clock().date()
        report = await self._refresh_sources(today)

        if not report.changed_sources and not self.needs_update:
            _LOGGER.debug("No schedule changes for %s", report.date)
            return report

        self.needs_update = False
        _LOGGER.info(
            "Schedule update needed for %s (changed sources: %s)",
            report.date, ", ".join(sorted(report.changed_sources)) or "retry",
        )
        return await self._push(report)

    async def _refresh_sources(self, today: dt.date) -> CycleReport:
        """Fetch and rebuild every source concurrently; failures leave a source untouched."""
        results = await asyncio.gather(
            *[self._refresh_source(schedule, today) for schedule in self.schedules],
            return_exceptions=True,
        )

        changed: set[str] = set()
        failed: dict[str, str] = {}
        for schedule, result in zip(self.schedules, results):
            key = schedule.source.key
            if isinstance(result, BaseException):
                _LOGGER.error("Failed to refresh calendar %s: %s", key, result)
                failed[key] = str(result)
            elif result:
                changed.add(key)

        return CycleReport(
            date=format_date(today),
            changed_sources=frozenset(changed),
            failed_sources=failed,
        )

    async def _refresh_source(self, schedule: RoomSchedule, today: dt.date) -> bool:
        raw_events = await self._fetch_feed(schedule.source)
        return apply_schedule(schedule, raw_events, today)

    async def _fetch_feed(self, source: CalendarSource) -> list[dict]:
        return await fetch_feed(
            self._get_feed_session(),
            source.feed_url(self._feed_url_template),
            self._feed_user,
            self._feed_password,
        )

    def _get_feed_session(self) -> aiohttp.ClientSession:
        if self._feed_session is None or self._feed_session.closed:
            self._feed_session = aiohttp.ClientSession()
        return self._feed_session

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def merged_events(self) -> list[CalendarEvent]:
        """All sources' current events, concatenated in source order."""
        return [event for schedule in self.schedules for event in schedule.events]

    def targets_for_room(self, room: str) -> list[DeviceTarget]:
        return [DeviceTarget(room, address) for address in self.locations.get(room, [])]

    async def _push(self, report: CycleReport) -> CycleReport:
        """Upload today's schedule of every room to each of its devices."""
        todays = events_for_date(self.merged_events(), report.date)
        rooms = sorted({event.room for event in todays})

        targets_pushed: list[DeviceTarget] = []
        uploads = []
        skipped_rooms: list[str] = []
        for room in rooms:
            targets = self.targets_for_room(room)
            if not targets:
                _LOGGER.info("No device configured for room %s, skipping", room)
                skipped_rooms.append(room)
                continue

            entries = sort_by_start([event for event in todays if event.room == room])
            for target in targets:
                targets_pushed.append(target)
                uploads.append(self._queue.run(
                    target.address,
                    lambda t=target, e=entries: upload_schedule(self.api, t, report.date, e),
                ))

        results = await asyncio.gather(*uploads, return_exceptions=True)

        uploaded: list[DeviceTarget] = []
        failed: dict[str, str] = {}
        retry = False
        for target, result in zip(targets_pushed, results):
            if isinstance(result, TimeoutError):
                _LOGGER.warning(
                    "Upload of room %s to %s timed out, retrying next cycle",
                    target.room, target.address,
                )
                failed[target.address] = str(result) or "timeout"
                retry = True
            elif isinstance(result, BaseException):
                _LOGGER.error(
                    "Upload of room %s to %s failed: %s", target.room, target.address, result
                )
                failed[target.address] = str(result) or type(result).__name__
            else:
                uploaded.append(target)

        if retry:
            self.needs_update = True

        _LOGGER.info(
            "Pushed %s rooms: %s uploads succeeded, %s failed",
            len(rooms) - len(skipped_rooms), len(uploaded), len(failed),
        )
        return dataclasses.replace(
            report,
            pushed=True,
            uploaded=uploaded,
            failed_uploads=failed,
            skipped_rooms=skipped_rooms,
            retry_scheduled=retry,
        )

    # ------------------------------------------------------------------
    # Scheduling loop
    # ------------------------------------------------------------------

    async def run_forever(self, interval: float = POLL_INTERVAL) -> None:
        """
        Start a cycle now and then every interval seconds.

        Ticks do not wait for the previous cycle; run_cycle() skips a tick
        that overlaps. An unexpected error inside a cycle is re-raised here.
        """
        loop = asyncio.get_event_loop()
        next_tick = loop.time()
        while True:
            if self._fatal is not None:
                raise self._fatal
            self._start_cycle()
            next_tick += interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

    def _start_cycle(self) -> asyncio.Task:
        task = asyncio.ensure_future(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._on_cycle_done)
        return task

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._cycle_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOGGER.error("Polling cycle crashed: %s", exc)
            self._fatal = exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Clean up all resources owned by this orchestrator."""
        for task in list(self._cycle_tasks):
            task.cancel()
        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)
        self._cycle_tasks.clear()
        await self.api.close()
        if self._feed_session is not None and not self._feed_session.closed:
            await self._feed_session.close()
        self._feed_session = None
