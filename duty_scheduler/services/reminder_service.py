"""
Duty Reminder Service
Notifies the on-call employee before their shift through the configured webhook
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Optional

import httpx

from ..cache import ScheduleCache
from ..config import DUTY_SHIFT_START, REQUEST_TIMEOUT_SECONDS
from ..schemas import Assignment, ReminderSettings

logger = logging.getLogger(__name__)


def parse_shift_start(value: str) -> time:
    """Parse an HH:MM shift start"""
    try:
        hour, minute = value.strip().split(":")
        return time(int(hour), int(minute))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid shift start {value!r}, expected HH:MM") from e


class ReminderService:
    """Reads ReminderSettings, never owns or persists them"""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        shift_start: str = DUTY_SHIFT_START,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._http = http_client
        self.shift_start = parse_shift_start(shift_start)
        self.clock = clock
        self._sent: set[date] = set()

    def shift_starts_at(self, assignment: Assignment) -> datetime:
        return datetime.combine(assignment.date, self.shift_start)

    def reminder_due_at(self, assignment: Assignment, settings: ReminderSettings) -> datetime:
        return self.shift_starts_at(assignment) - timedelta(hours=settings.hours_before)

    def due_assignments(
        self,
        cache: ScheduleCache,
        settings: ReminderSettings,
        now: Optional[datetime] = None,
    ) -> list[Assignment]:
        """Assignments whose reminder window is open and that were not reminded yet"""
        if not settings.enabled:
            return []
        now = now or self.clock()
        due = []
        for day, assignment in sorted(cache.items()):
            if day in self._sent:
                continue
            if self.reminder_due_at(assignment, settings) <= now < self.shift_starts_at(assignment):
                due.append(assignment)
        return due

    def build_payload(self, assignment: Assignment) -> dict[str, Any]:
        return {
            "type": "reminder",
            "schedule": assignment.to_wire(),
            "message": (
                f"Reminder: {assignment.employee_name} is on phone duty tonight. "
                f"Contact: {assignment.phone}"
            ),
            "sentAt": self.clock().isoformat(),
        }

    async def send_reminder(
        self, assignment: Assignment, settings: ReminderSettings
    ) -> tuple[bool, Optional[str]]:
        """
        Post a reminder for one assignment to the webhook.

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        if not settings.enabled:
            logger.debug("Reminders disabled")
            return False, "Reminders disabled"
        if not settings.webhook_url:
            logger.debug(f"No webhook configured, skipping reminder for {assignment.date}")
            return False, "No webhook URL configured"

        payload = self.build_payload(assignment)
        try:
            if self._http is not None:
                response = await self._http.post(settings.webhook_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                    response = await client.post(settings.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ Reminder webhook unreachable for {assignment.date}: {e}")
            return False, str(e)

        if not response.is_success:
            logger.error(
                f"❌ Reminder webhook rejected {assignment.date}: HTTP {response.status_code}"
            )
            return False, f"Webhook returned HTTP {response.status_code}"

        self._sent.add(assignment.date)
        logger.info(f"✅ Reminder sent to {assignment.employee_name} for {assignment.date}")
        return True, None

    async def send_due_reminders(
        self,
        cache: ScheduleCache,
        settings: ReminderSettings,
        now: Optional[datetime] = None,
    ) -> list[date]:
        """Send every due reminder once; returns the dates reminded"""
        sent = []
        for assignment in self.due_assignments(cache, settings, now):
            success, _ = await self.send_reminder(assignment, settings)
            if success:
                sent.append(assignment.date)
        return sent
