"""
Calendar-to-display schedule uploader.

Polls calendar feeds, derives each room's schedule for today and pushes it
to the display devices mounted at that room through the session-cookie
protected display-control API.
"""
from .api.reauth import ReauthCoordinator
from .api.session import SessionClient
from .const import VERSION
from .coordinator import UploadOrchestrator
from .coordinator_data import CycleReport

__all__ = ["CycleReport", "ReauthCoordinator", "SessionClient", "UploadOrchestrator", "VERSION"]
