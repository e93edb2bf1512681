"""
Calendar feed retrieval and parsing.

Responsible for:
- Downloading one iCalendar document with basic-auth credentials
- Flattening its top-level components into raw records for the schedule builder
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp
from icalendar import Calendar

from ..const import FEED_TIMEOUT
from ..errors import FeedError

_LOGGER = logging.getLogger(__name__)


def _property_value(component, name: str):
    prop = component.get(name)
    if prop is None:
        return None
    return getattr(prop, "dt", prop)


def parse_feed(ics_content: str | bytes) -> list[dict]:
    """
    Parse an iCalendar document into raw records.

    Every top-level component becomes one dict:
    {"type", "uid", "start", "end", "summary", "description"}; start/end are
    the date or datetime values icalendar decoded. Filtering by type is left
    to the schedule builder.

    Raises:
        FeedError: The document is not valid iCalendar.
    """
    try:
        calendar = Calendar.from_ical(ics_content)
    except Exception as e:  # noqa: BLE001
        raise FeedError(f"Invalid iCalendar document: {e}") from e

    records = []
    for component in calendar.subcomponents:
        records.append({
            "type": component.name,
            "uid": str(component.get("UID", "")),
            "start": _property_value(component, "DTSTART"),
            "end": _property_value(component, "DTEND"),
            "summary": str(component.get("SUMMARY", "")),
            "description": str(component.get("DESCRIPTION", "")),
        })
    return records


async def fetch_feed(
    session: aiohttp.ClientSession,
    url: str,
    user: str,
    password: str,
    timeout: float = FEED_TIMEOUT,
) -> list[dict]:
    """
    Download and parse one calendar feed.

    Corresponding CURL command:
    curl -u USER:PASSWORD 'https://www.fbfinanzen.de/ical/vit/2021/h3/k01'

    Raises:
        FeedError: On timeout, network error, non-2xx status or unparsable body.
    """
    timeout_config = aiohttp.ClientTimeout(total=timeout)
    auth = aiohttp.BasicAuth(user, password)
    try:
        async with session.get(url, auth=auth, timeout=timeout_config) as response:
            if not 200 <= response.status < 300:
                raise FeedError(f"Feed {url} answered HTTP {response.status}")
            ics_content = await response.read()
    except (asyncio.TimeoutError, TimeoutError) as e:
        raise FeedError(f"Timeout while fetching feed {url}") from e
    except aiohttp.ClientError as e:
        raise FeedError(f"Error while fetching feed {url}: {e}") from e

    records = parse_feed(ics_content)
    _LOGGER.debug("Feed %s returned %s components", url, len(records))
    return records
