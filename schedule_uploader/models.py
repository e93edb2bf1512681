"""
Domain models for the schedule uploader.

This module contains pure data classes representing calendar sources, the
per-source schedule state, built events and display devices.
These classes have no dependencies on HTTP or API logic.
"""
from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class CalendarEvent:
    """One scheduled slot, already normalised to local date and time strings."""

    uid: str
    date: str         # DD.MM.YYYY
    start: str        # HH:MM
    end: str          # HH:MM
    description: str
    room: str

    def as_entry(self) -> list[str]:
        """Upload wire form: ["HH:MM-HH:MM", description]."""
        return [f"{self.start}-{self.end}", self.description]


@dataclasses.dataclass(frozen=True)
class CalendarSource:
    """One calendar feed, identified by year, section and class."""

    class_name: str
    year: int
    section: str

    @property
    def key(self) -> str:
        return f"{self.year}/{self.section}/{self.class_name}"

    def feed_url(self, template: str) -> str:
        return template.format(year=self.year, section=self.section, **{"class": self.class_name})


@dataclasses.dataclass(frozen=True)
class DeviceTarget:
    """A display identified by its hardware address, mounted at a room."""

    room: str
    address: str


class RoomSchedule:
    """
    Mutable schedule state of one calendar source.

    Rebuilt wholesale every polling cycle; fingerprint always belongs to the
    today-subset of the events list as of the last rebuild.
    """

    source: CalendarSource
    events: list[CalendarEvent]
    fingerprint: str | None = None
    date: str | None = None

    def __init__(self, source: CalendarSource) -> None:
        """Initialize an empty schedule for the given source."""
        self.source = source
        self.events = []

    def __repr__(self) -> str:
        return f"RoomSchedule({self.source.key}, {len(self.events)} events, date={self.date})"
