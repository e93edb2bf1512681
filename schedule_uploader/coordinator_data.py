"""
CycleReport: immutable summary of one polling cycle.

This is a pure data module with no network dependencies.
"""
from __future__ import annotations

import dataclasses

from .models import DeviceTarget


@dataclasses.dataclass(frozen=True)
class CycleReport:
    """
    Outcome of one fetch-build-detect-push pass.

    Always build a new one via dataclasses.replace(), never mutate in place.
    """

    # Local date the cycle evaluated as "today" (DD.MM.YYYY)
    date: str = ""

    # Another cycle was still running, nothing was done
    skipped: bool = False

    # Source keys whose today-fingerprint changed
    changed_sources: frozenset[str] = frozenset()

    # Source key → feed error text; those sources kept last cycle's events
    failed_sources: dict[str, str] = dataclasses.field(default_factory=dict)

    # Whether uploads were attempted at all
    pushed: bool = False

    # Devices that accepted their schedule
    uploaded: list[DeviceTarget] = dataclasses.field(default_factory=list)

    # Device address → error text for rejected or failed uploads
    failed_uploads: dict[str, str] = dataclasses.field(default_factory=dict)

    # Rooms with events today but no configured device
    skipped_rooms: list[str] = dataclasses.field(default_factory=list)

    # A timeout occurred; the next cycle pushes all rooms again
    retry_scheduled: bool = False
