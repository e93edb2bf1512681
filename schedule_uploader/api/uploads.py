"""
Schedule upload to a single display device.

Responsible for:
- Building the upload envelope from a room's sorted events
- Posting it through the ReauthCoordinator and rejecting non-success answers
"""
from __future__ import annotations

import logging

from ..const import UPLOAD_PATH
from ..models import CalendarEvent, DeviceTarget
from ..requests import ApiResponse, ApiResponseError
from .reauth import ReauthCoordinator

_LOGGER = logging.getLogger(__name__)


def build_envelope(target: DeviceTarget, date: str, events: list[CalendarEvent]) -> dict:
    """
    Wire form of one upload. Entries keep the order of events.

    {"mac": ..., "schedule": {"room": ..., "date": "DD.MM.YYYY",
                              "entries": [["HH:MM-HH:MM", description], ...]}}
    """
    return {
        "mac": target.address,
        "schedule": {
            "room": target.room,
            "date": date,
            "entries": [event.as_entry() for event in events],
        },
    }


async def upload_schedule(
    api: ReauthCoordinator,
    target: DeviceTarget,
    date: str,
    events: list[CalendarEvent],
) -> ApiResponse:
    """
    Upload a room's schedule to one device.

    Corresponding CURL command:
    curl -X 'POST' 'API_URL/upload-schedule' \\
      -H 'Cookie: SESSION' -H 'Content-Type: application/json' \\
      -d '{"mac": "0000021E733A7430", "schedule": {...}}'

    Raises:
        ApiResponseError: The API answered with a non-success status.
        RequestTimeout, RequestError, AuthError, SessionExpired: from the
            session layer.
    """
    envelope = build_envelope(target, date, events)
    response = await api.send("POST", UPLOAD_PATH, envelope)
    if not response.ok:
        raise ApiResponseError(response)
    _LOGGER.debug(
        "Uploaded %s entries for room %s to %s", len(events), target.room, target.address
    )
    return response
