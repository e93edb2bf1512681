"""
Exception hierarchy shared by the session layer and the upload orchestrator.

None of these escape a polling cycle: the coordinator and orchestrator catch
them and turn them into log lines and CycleReport entries.
"""


class ScheduleUploaderError(Exception):
    """Base class for all errors raised by this package."""


class AuthError(ScheduleUploaderError):
    """Login was rejected or the login request itself failed."""


class SessionExpired(ScheduleUploaderError):
    """A request was rejected for a missing or expired session and could not be replayed."""


class RequestTimeout(ScheduleUploaderError, TimeoutError):
    """A request exceeded its deadline. Marks the next cycle for a retry."""


class RequestError(ScheduleUploaderError):
    """Transport-level failure other than a timeout (DNS, refused connection, ...)."""


class ConfigurationError(ScheduleUploaderError):
    """Missing or invalid configuration value."""


class FeedError(ScheduleUploaderError):
    """A calendar feed could not be retrieved or parsed."""
