"""
Schedule builder: raw feed records -> normalised CalendarEvents -> fingerprint.

Everything here is a pure function except apply_schedule(), which writes the
result into a RoomSchedule and reports whether today's subset changed.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import hashlib
import json
import logging
import re

from .const import DATE_FORMAT, EVENT_COMPONENT, ROOM_PATTERN, TIME_FORMAT
from .models import CalendarEvent, RoomSchedule

_LOGGER = logging.getLogger(__name__)

_ROOM_RE = re.compile(ROOM_PATTERN)


def extract_room(text: str | None) -> str | None:
    """
    Return the room number of the first "Room: <digits>" in text.

    Leading zeros are stripped but one digit always remains, so "02" -> "2"
    and "00" -> "0". Returns None when there is no match.
    """
    if not text:
        return None
    match = _ROOM_RE.search(text)
    if match is None:
        return None
    return match.group(1).lstrip("0") or "0"


def _to_local(value) -> dt.datetime | None:
    """Local wall-clock datetime for a feed timestamp (date-only values start at 00:00)."""
    if isinstance(value, dt.datetime):
        return value.astimezone() if value.tzinfo is not None else value
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time.min)
    return None


def format_date(day: dt.date) -> str:
    return day.strftime(DATE_FORMAT)


def build_event(raw: dict) -> CalendarEvent | None:
    """Normalise one raw feed record, or None if it is not a schedulable event."""
    if raw.get("type") != EVENT_COMPONENT:
        return None

    room = extract_room(raw.get("description"))
    if room is None:
        return None

    start = _to_local(raw.get("start"))
    if start is None:
        _LOGGER.debug("Event %s has no start time, skipping", raw.get("uid"))
        return None
    end = _to_local(raw.get("end")) or start

    return CalendarEvent(
        uid=str(raw.get("uid", "")),
        date=format_date(start.date()),
        start=start.strftime(TIME_FORMAT),
        end=end.strftime(TIME_FORMAT),
        description=raw.get("summary") or "",
        room=room,
    )


def build_events(raw_events: list[dict]) -> list[CalendarEvent]:
    """Build the full event list of one source, in feed order."""
    events = []
    for raw in raw_events:
        event = build_event(raw)
        if event is not None:
            events.append(event)
    return events


def events_for_date(events: list[CalendarEvent], date: str) -> list[CalendarEvent]:
    return [e for e in events if e.date == date]


def sort_by_start(events: list[CalendarEvent]) -> list[CalendarEvent]:
    """Stable sort on the zero-padded HH:MM start string."""
    return sorted(events, key=lambda e: e.start)


def compute_fingerprint(events: list[CalendarEvent]) -> str:
    """
    SHA-256 over the canonical JSON form of the events.

    Events are ordered by content first so the digest does not depend on
    the order in which the feed listed them.
    """
    canonical = sorted(
        (event_to_dict(e) for e in events),
        key=lambda d: (d["start"], d["end"], d["room"], d["description"], d["uid"]),
    )
    serialized = json.dumps(canonical, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def event_to_dict(event: CalendarEvent) -> dict:
    return dataclasses.asdict(event)


def build_schedule(raw_events: list[dict], today: dt.date) -> tuple[list[CalendarEvent], str]:
    """Return (all events, fingerprint of today's events) without touching any state."""
    events = build_events(raw_events)
    fingerprint = compute_fingerprint(events_for_date(events, format_date(today)))
    return events, fingerprint


def apply_schedule(schedule: RoomSchedule, raw_events: list[dict], today: dt.date) -> bool:
    """
    Replace the schedule's events with a fresh build and update its fingerprint.

    Returns True when today's fingerprint differs from the stored one.
    """
    events, fingerprint = build_schedule(raw_events, today)
    schedule.events = events
    schedule.date = format_date(today)

    if fingerprint == schedule.fingerprint:
        return False
    _LOGGER.debug(
        "Today's schedule of %s changed (%s events in feed)", schedule.source.key, len(events)
    )
    schedule.fingerprint = fingerprint
    return True
