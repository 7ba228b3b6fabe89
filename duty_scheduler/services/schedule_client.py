"""
Remote Schedule Client

Typed CRUD surface over the backend schedule endpoints. Every call needs an
active session; the bearer token is attached per request. A 401 is the one
place where an expired-but-not-yet-detected token is discovered, so it tears
the session down before failing.
"""
import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..api_client import BackendClient, error_message, parse_model, unwrap
from ..errors import AuthError, RemoteError
from ..schemas import Assignment, AssignmentUpdate, RegisterRequest, ReminderSettings, User
from ..session import SessionManager

logger = logging.getLogger(__name__)


def parse_schedule_map(payload: Any) -> dict[date, Assignment]:
    """
    Build a date-keyed mapping from a GET /api/schedules payload.

    Rows that fail validation are skipped with a warning rather than
    failing the whole sync.
    """
    if isinstance(payload, dict):
        rows = [{**item, "date": key} for key, item in payload.items() if isinstance(item, dict)]
    elif isinstance(payload, list):
        rows = [item for item in payload if isinstance(item, dict)]
    else:
        rows = []

    schedules: dict[date, Assignment] = {}
    for row in rows:
        try:
            assignment = Assignment.model_validate(row)
        except PydanticValidationError as e:
            logger.warning(f"⚠️ Skipping invalid schedule row {row.get('date')}: {e}")
            continue
        schedules[assignment.date] = assignment
    return schedules


def returned_assignment(payload: Any, sent: Assignment) -> Assignment:
    """The assignment echoed by the backend, falling back to what was sent"""
    if isinstance(payload, dict):
        try:
            return Assignment.model_validate({"date": sent.date.isoformat(), **payload})
        except PydanticValidationError:
            logger.warning(f"⚠️ Unexpected schedule payload for {sent.date}, keeping sent values")
    return sent


class ScheduleClient:
    """Authenticated access to /api/schedule(s) and the other bearer endpoints"""

    def __init__(self, backend: BackendClient, sessions: SessionManager):
        self.backend = backend
        self.sessions = sessions

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        session = self.sessions.current_session()
        if session is None:
            raise AuthError("Authentication required")

        response = await self.backend.request(
            method, path, token=session.token, json=json, params=params
        )
        if response.status_code == 401:
            logger.warning(f"⚠️ 401 Unauthorized for {method} {path}, ending session")
            self.sessions.logout(reason="unauthorized")
            raise AuthError("Authentication required")
        return response

    @staticmethod
    def _payload(response: httpx.Response) -> Any:
        if not response.is_success:
            message = error_message(response)
            logger.error(f"❌ Schedule API error: HTTP {response.status_code} {message}")
            raise RemoteError(response.status_code, message)
        return unwrap(response)

    # ---------- schedules ----------

    async def create(self, assignment: Assignment) -> Assignment:
        response = await self._send("POST", "/api/schedule", json=assignment.to_wire())
        return returned_assignment(self._payload(response), assignment)

    async def update(self, day: date, changes: AssignmentUpdate) -> Assignment:
        response = await self._send(
            "PUT", f"/api/schedule/{day.isoformat()}", json=changes.to_wire()
        )
        sent = Assignment(employee_name=changes.employee_name, phone=changes.phone, date=day)
        return returned_assignment(self._payload(response), sent)

    async def delete(self, day: date) -> date:
        """Delete the assignment for a date. An already absent row counts as deleted."""
        response = await self._send("DELETE", f"/api/schedule/{day.isoformat()}")
        if response.status_code == 404:
            logger.info(f"ℹ️ Schedule for {day} already absent")
            return day
        self._payload(response)
        return day

    async def get(self, day: date) -> Optional[Assignment]:
        response = await self._send("GET", f"/api/schedule/{day.isoformat()}")
        if response.status_code == 404:
            return None
        payload = self._payload(response)
        if not isinstance(payload, dict):
            return None
        return parse_model(Assignment, {"date": day.isoformat(), **payload}, response.status_code)

    async def get_all(self) -> dict[date, Assignment]:
        response = await self._send("GET", "/api/schedules")
        return parse_schedule_map(self._payload(response))

    async def get_range(self, start: date, end: date) -> dict[date, Assignment]:
        response = await self._send(
            "GET",
            "/api/schedules",
            params={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
        return parse_schedule_map(self._payload(response))

    # ---------- account ----------

    async def current_user(self) -> User:
        response = await self._send("GET", "/api/auth/me")
        return parse_model(User, self._payload(response), response.status_code)

    async def get_reminder_settings(self, user_id: str) -> ReminderSettings:
        response = await self._send("GET", f"/api/settings/reminders/{user_id}")
        return parse_model(ReminderSettings, self._payload(response), response.status_code)

    async def save_reminder_settings(
        self, user_id: str, settings: ReminderSettings
    ) -> ReminderSettings:
        response = await self._send(
            "POST", f"/api/settings/reminders/{user_id}", json=settings.model_dump(mode="json")
        )
        payload = self._payload(response)
        if not payload:
            return settings
        return parse_model(ReminderSettings, payload, response.status_code)

    # ---------- admin ----------

    async def list_users(self) -> dict[str, User]:
        response = await self._send("GET", "/api/admin/users")
        payload = self._payload(response) or {}
        return {
            name: parse_model(User, data, response.status_code) for name, data in payload.items()
        }

    async def set_user_status(self, username: str, is_active: bool) -> None:
        response = await self._send(
            "POST", f"/api/admin/users/{username}/status", json=is_active
        )
        self._payload(response)

    async def create_user(self, request: RegisterRequest, role: str = "user") -> User:
        body = {**request.model_dump(exclude_none=True), "role": role}
        response = await self._send("POST", "/api/admin/users/create", json=body)
        return parse_model(User, self._payload(response), response.status_code)
