"""
Pytest configuration and shared fixtures.

The backend is simulated in memory behind httpx.MockTransport.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from duty_scheduler.main import SchedulerApp  # noqa: E402

PASSWORD = "secret123"
START_MS = 1_752_480_000_000  # 2025-07-14T08:00:00Z


class FakeClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeBackend:
    """In-memory stand-in for the scheduler REST service"""

    def __init__(self):
        self.users = {
            "alice": {
                "password": PASSWORD,
                "user": {"username": "alice", "email": "alice@example.com", "is_active": True, "role": "admin"},
            }
        }
        self.schedules: dict[str, dict] = {}
        self.reminders: dict[str, dict] = {}
        self.tokens: set[str] = set()
        self.expires_in = 3600
        self.registration_open = True
        self.offline = False
        self.failures: dict[tuple[str, str], int] = {}
        self.calls: list[tuple[str, str]] = []
        self.auth_headers: list[Optional[str]] = []
        # requests wait here while set to an unset Event
        self.gate: Optional[asyncio.Event] = None
        self.in_flight = 0
        self.max_in_flight = 0

    def fail(self, method: str, path: str, status: int = 500) -> None:
        self.failures[(method, path)] = status

    def revoke_tokens(self) -> None:
        self.tokens.clear()

    def schedule_calls(self, method: str) -> list[str]:
        return [p for m, p in self.calls if m == method and p.startswith("/api/schedule")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        self.auth_headers.append(request.headers.get("Authorization"))
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # let concurrently dispatched requests overlap
            await asyncio.sleep(0)
            if self.gate is not None:
                await self.gate.wait()
            return self._route(request)
        finally:
            self.in_flight -= 1

    def _route(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        status = self.failures.get((method, path))
        if status:
            return httpx.Response(status, json={"detail": "Internal server error"})

        body = json.loads(request.content) if request.content else None

        if path == "/health":
            return httpx.Response(200, json={"status": "healthy", "service": "phone-duty-scheduler"})
        if path == "/api/auth/registration-status":
            return httpx.Response(
                200,
                json={
                    "public_registration_enabled": self.registration_open,
                    "admin_only_registration": not self.registration_open,
                },
            )
        if path == "/api/auth/login":
            account = self.users.get(body["username"])
            if account is None or account["password"] != body["password"]:
                return httpx.Response(401, json={"detail": "Incorrect username or password"})
            token = f"token-{body['username']}-{len(self.tokens)}"
            self.tokens.add(token)
            return httpx.Response(
                200,
                json={
                    "access_token": token,
                    "token_type": "bearer",
                    "expires_in": self.expires_in,
                    "user": account["user"],
                },
            )
        if path == "/api/auth/register":
            if body["username"] in self.users:
                return httpx.Response(400, json={"detail": "Username already registered"})
            user = {"username": body["username"], "email": body.get("email"), "is_active": True, "role": "user"}
            self.users[body["username"]] = {"password": body["password"], "user": user}
            return httpx.Response(200, json={"success": True, "message": "User created", "data": user})

        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer ") or auth[len("Bearer "):] not in self.tokens:
            return httpx.Response(401, json={"detail": "Could not validate credentials"})

        if path == "/api/auth/me":
            return httpx.Response(200, json=self.users["alice"]["user"])
        if path == "/api/schedules":
            data = self.schedules
            start = request.url.params.get("start_date")
            end = request.url.params.get("end_date")
            if start and end:
                data = {k: v for k, v in data.items() if start <= k <= end}
            return httpx.Response(200, json={"success": True, "message": "ok", "data": data})
        if path == "/api/schedule" and method == "POST":
            self.schedules[body["date"]] = body
            return httpx.Response(200, json={"success": True, "message": "Created", "data": body})
        if path.startswith("/api/schedule/"):
            day = path.rsplit("/", 1)[1]
            if day not in self.schedules:
                return httpx.Response(404, json={"detail": "Schedule not found"})
            if method == "GET":
                return httpx.Response(200, json={"success": True, "message": "ok", "data": self.schedules[day]})
            if method == "PUT":
                self.schedules[day] = {**body, "date": day}
                return httpx.Response(200, json={"success": True, "message": "Updated", "data": self.schedules[day]})
            if method == "DELETE":
                del self.schedules[day]
                return httpx.Response(200, json={"success": True, "message": "Deleted", "data": {"date": day}})
        if path.startswith("/api/settings/reminders/"):
            user_id = path.rsplit("/", 1)[1]
            if method == "POST":
                self.reminders[user_id] = body
                return httpx.Response(200, json={"success": True, "message": "Saved", "data": body})
            if user_id not in self.reminders:
                return httpx.Response(404, json={"detail": "No settings"})
            return httpx.Response(200, json={"success": True, "message": "ok", "data": self.reminders[user_id]})
        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
async def app(backend, clock, state_file):
    scheduler = SchedulerApp(
        base_url="http://scheduler.test",
        state_file=state_file,
        transport=httpx.MockTransport(backend.handler),
        clock=clock,
    )
    yield scheduler
    await scheduler.close()


@pytest.fixture
async def logged_in(app):
    await app.login("alice", PASSWORD)
    return app


@pytest.fixture
def assignment_row():
    """Backend row for one on-call day"""
    return {"name": "Anna Nowak", "phone": "987654321", "date": "2025-07-14"}
