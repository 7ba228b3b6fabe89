"""
Batch Edit Coordinator

Turns one user intent ("put employee E with phone P on the selected days")
into per-date remote calls and applies the net effect to the cache. The
protocol is dispatch all, await all, apply once: nothing touches the cache
until every per-date result is in, and a batch with any failure applies
nothing.

Known gap: on a partial failure the dates that did succeed remotely are not
rolled back, so the cache trails the backend for those dates until the next
resync (`ScheduleCache.resync`). `BatchEditError.succeeded` names them.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Sequence

from ...cache import ScheduleCache
from ...errors import (
    AuthError,
    BatchEditError,
    BatchInProgressError,
    ScheduleError,
    ValidationError,
)
from ...schemas import Assignment, AssignmentUpdate, Session
from ...services.schedule_client import ScheduleClient
from ...session import SessionManager
from ...shared.validators import validate_employee_name, validate_phone
from .selection import SelectionSet

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    action: str
    dates: list[date]
    assignments: list[Assignment] = field(default_factory=list)


class BatchEditCoordinator:
    """Single- and multi-date save/delete against the backend and the cache"""

    def __init__(
        self,
        client: ScheduleClient,
        cache: ScheduleCache,
        sessions: SessionManager,
        selection: Optional[SelectionSet] = None,
    ):
        self.client = client
        self.cache = cache
        self.sessions = sessions
        self.selection = selection or SelectionSet()
        self.saving = False
        self.deleting = False

    @property
    def busy(self) -> bool:
        return self.saving or self.deleting

    def form_values(self, day: Optional[date] = None) -> tuple[str, str]:
        """(employee name, phone) to prefill the editor with for a date"""
        day = day or self.selection.single
        assignment = self.cache.get(day) if day else None
        if assignment is None:
            return "", ""
        return assignment.employee_name, assignment.phone

    def cancel(self) -> None:
        self.selection.clear()

    async def save(self, employee_name: str, phone: str) -> BatchResult:
        """
        Assign one employee to every selected date.

        Raises:
            ValidationError: Bad name/phone or empty selection (no remote call made)
            AuthError: No session, or it ended while the batch was in flight
            BatchEditError: At least one date failed; the cache is left untouched
            BatchInProgressError: Another batch is still outstanding
        """
        if self.busy:
            raise BatchInProgressError("Another change is still being saved")
        name = validate_employee_name(employee_name)
        validate_phone(phone)
        dates = self._selected_dates()
        session = self._require_session()

        logger.info(f"🔄 Saving {name} on {len(dates)} date(s)")
        self.saving = True
        try:
            outcomes = await asyncio.gather(
                *(self._save_one(day, name, phone) for day in dates), return_exceptions=True
            )
        finally:
            self.saving = False

        saved = self._collect("save", dates, outcomes, session)
        self.cache.apply(saved)
        self.selection.clear()
        logger.info(f"✅ Saved {name} on {len(saved)} date(s)")
        return BatchResult(action="save", dates=dates, assignments=saved)

    async def delete(self) -> BatchResult:
        """
        Remove the assignments of every selected date. Dates without an
        assignment are no-ops and never reach the backend.
        """
        if self.busy:
            raise BatchInProgressError("Another change is still being saved")
        dates = self._selected_dates()
        session = self._require_session()
        targets = [day for day in dates if day in self.cache]

        logger.info(f"🔄 Deleting {len(targets)} of {len(dates)} selected date(s)")
        self.deleting = True
        try:
            outcomes = await asyncio.gather(
                *(self.client.delete(day) for day in targets), return_exceptions=True
            )
        finally:
            self.deleting = False

        self._collect("delete", targets, outcomes, session)
        if targets:
            self.cache.remove(targets)
        self.selection.clear()
        logger.info(f"✅ Deleted {len(targets)} schedule(s)")
        return BatchResult(action="delete", dates=dates)

    async def _save_one(self, day: date, name: str, phone: str) -> Assignment:
        if day in self.cache:
            return await self.client.update(
                day, AssignmentUpdate(employee_name=name, phone=phone)
            )
        return await self.client.create(Assignment(employee_name=name, phone=phone, date=day))

    def _selected_dates(self) -> list[date]:
        if self.selection.is_empty:
            raise ValidationError("Select at least one date first")
        return sorted(self.selection.dates)

    def _require_session(self) -> Session:
        session = self.sessions.current_session()
        if session is None:
            raise AuthError("Authentication required")
        return session

    def _collect(
        self, action: str, dates: Sequence[date], outcomes: Sequence[Any], session: Session
    ) -> list[Any]:
        """Turn gathered outcomes into results, or raise the batch's single failure"""
        failures: dict[date, ScheduleError] = {}
        succeeded: list[date] = []
        for day, outcome in zip(dates, outcomes):
            if isinstance(outcome, ScheduleError):
                failures[day] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                succeeded.append(day)

        for error in failures.values():
            if isinstance(error, AuthError):
                raise error

        if failures:
            logger.error(
                f"❌ Batch {action} failed for {len(failures)} of {len(dates)} date(s): "
                + ", ".join(f"{d}: {e}" for d, e in sorted(failures.items()))
            )
            if succeeded:
                logger.warning(
                    f"⚠️ {len(succeeded)} date(s) were written remotely and not rolled back; "
                    "cache differs from backend until resync"
                )
            raise BatchEditError(action, failures, succeeded)

        current = self.sessions.current_session()
        if current is None or current.token != session.token:
            logger.warning(f"⚠️ Session ended during batch {action}, discarding results")
            raise AuthError("Your session ended before the changes could be applied")

        return list(outcomes)
