"""Environment configuration for the schedule uploader."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Mapping

import voluptuous as vol

from .const import DEFAULT_CALENDARS, DEFAULT_LOCATIONS, POLL_INTERVAL, UPLOAD_TIMEOUT
from .errors import ConfigurationError
from .models import CalendarSource

_LOGGER = logging.getLogger(__name__)

non_empty = vol.All(str, vol.Length(min=1))
# Feed URLs are templated per calendar: {year}, {section} and {class}
url_template = vol.All(non_empty, vol.Match(r"^https?://"))


def _json(value):
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError as e:
            raise vol.Invalid(f"invalid JSON: {e}") from e
    return value


LOCATIONS_SCHEMA = vol.Schema({vol.Coerce(str): [non_empty]})
CALENDARS_SCHEMA = vol.Schema([
    vol.Schema({
        vol.Required("class"): non_empty,
        vol.Required("year"): vol.Coerce(int),
        vol.Required("section"): non_empty,
    })
])

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required("API_URL"): url_template,
        vol.Required("API_USER"): non_empty,
        vol.Required("API_PASS"): non_empty,
        vol.Required("ICAL_URL"): url_template,
        vol.Required("ICAL_USER"): non_empty,
        vol.Required("ICAL_PASS"): non_empty,
        vol.Optional("POLL_INTERVAL", default=POLL_INTERVAL): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional("UPLOAD_TIMEOUT", default=UPLOAD_TIMEOUT): vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False)),
        vol.Optional("LOCATIONS", default=DEFAULT_LOCATIONS): vol.All(_json, LOCATIONS_SCHEMA),
        vol.Optional("CALENDARS", default=DEFAULT_CALENDARS): vol.All(_json, CALENDARS_SCHEMA),
        vol.Optional("LOG_LEVEL", default="INFO"): vol.All(str, vol.Upper, vol.In(["DEBUG", "INFO", "WARNING", "ERROR"])),
    },
    extra=vol.REMOVE_EXTRA,
)

CONFIG_KEYS = frozenset(str(key) for key in CONFIG_SCHEMA.schema)


def load_config(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Read and validate the configuration from environment variables.

    Empty variables count as unset. Raises ConfigurationError naming the
    first offending key.
    """
    if environ is None:
        environ = os.environ
    raw = {key: value for key, value in environ.items() if key in CONFIG_KEYS and value != ""}
    try:
        return CONFIG_SCHEMA(raw)
    except vol.MultipleInvalid as e:
        key = ".".join(str(p) for p in e.path) or "configuration"
        raise ConfigurationError(f"{key}: {e.msg}") from e


def calendar_sources(config: Mapping[str, Any]) -> list[CalendarSource]:
    return [
        CalendarSource(class_name=c["class"], year=c["year"], section=c["section"])
        for c in config["CALENDARS"]
    ]
