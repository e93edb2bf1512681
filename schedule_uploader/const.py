VERSION = "0.3.0"

# Display-control API endpoints (relative to API_URL)
LOGIN_PATH = "/login"
UPLOAD_PATH = "/upload-schedule"

HTTP_FORBIDDEN = 403  # session missing or expired

# Timeouts (seconds)
UPLOAD_TIMEOUT = 7.5         # every request against the display API
FEED_TIMEOUT = 30            # calendar feed download
AVAILABILITY_TIMEOUT = 15    # startup HEAD probe

# Polling cadence (seconds); the first cycle runs at startup
POLL_INTERVAL = 60

# Re-authentication: requests waiting for a fresh session beyond this are rejected
MAX_PENDING_REQUESTS = 100

# Per-device upload queue
REQUEST_DELAY = 0.2          # minimum gap between consecutive uploads to the same device

# Free-text pattern carrying the room number inside an event description
ROOM_PATTERN = r"Room:\s*(\d+)"

DATE_FORMAT = "%d.%m.%Y"
TIME_FORMAT = "%H:%M"

# Component names produced by the feed parser; only the first is scheduled
EVENT_COMPONENT = "VEVENT"

# Room id → device addresses of the displays mounted at that room
DEFAULT_LOCATIONS: dict[str, list[str]] = {
    "2": ["0000021E733A7430"],
    "4": ["0000021E8D837433"],
}

# Calendar feeds polled every cycle
DEFAULT_CALENDARS: list[dict] = [
    {"class": "k01", "year": 2021, "section": "h3"},
    {"class": "k02", "year": 2021, "section": "h3"},
]
