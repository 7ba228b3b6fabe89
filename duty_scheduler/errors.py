"""Error taxonomy shared by every layer of the scheduler client."""

from datetime import date
from typing import Optional


class ScheduleError(Exception):
    """Base class; `message` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ScheduleError):
    """Local input was rejected. Never reaches the network."""


class AuthError(ScheduleError):
    """Credentials are missing, expired or were rejected by the backend."""


class RemoteError(ScheduleError):
    """The backend answered a well-formed request with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.message}"


class UnavailableError(ScheduleError):
    """No response at all: network failure or backend down."""


class BatchInProgressError(ScheduleError):
    """The same batch action is still outstanding."""


class BatchEditError(ScheduleError):
    """
    Aggregate failure of a multi-date save or delete.

    `failures` maps each failed date to the error it produced. `succeeded`
    lists the dates whose remote write went through anyway; those rows are
    not rolled back, so the cache and the backend differ until the next resync.
    """

    def __init__(
        self,
        action: str,
        failures: dict[date, ScheduleError],
        succeeded: Optional[list[date]] = None,
    ):
        count = len(failures)
        super().__init__(f"Failed to {action} {count} of the selected date(s)")
        self.action = action
        self.failures = failures
        self.succeeded = succeeded or []
