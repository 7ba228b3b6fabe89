"""
Application wiring

Builds the scheduler components around one shared backend client and one
durable store, and owns their startup/shutdown order.
"""
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import httpx

from .api_client import AuthClient, BackendClient
from .cache import CacheSource, ScheduleCache
from .config import (
    API_BASE_URL,
    DEFAULT_REMINDER_HOURS,
    LOG_LEVEL,
    REMINDER_WEBHOOK_URL,
    SESSION_CHECK_INTERVAL_SECONDS,
    STATE_FILE,
)
from .domain.scheduling import BatchEditCoordinator
from .errors import AuthError, RemoteError, UnavailableError
from .schemas import HealthStatus, ReminderSettings, Session
from .services.reminder_service import ReminderService
from .services.schedule_client import ScheduleClient
from .session import SessionManager, now_ms
from .storage import JsonFileStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Reduce verbosity of third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def default_reminder_settings() -> ReminderSettings:
    return ReminderSettings(
        enabled=True, hours_before=DEFAULT_REMINDER_HOURS, webhook_url=REMINDER_WEBHOOK_URL
    )


class SchedulerApp:
    """All scheduler components, wired leaves first"""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        state_file: Path = STATE_FILE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], int] = now_ms,
        check_interval: float = SESSION_CHECK_INTERVAL_SECONDS,
        reminders: Optional[ReminderService] = None,
    ):
        self.store = JsonFileStore(state_file)
        self.backend = BackendClient(base_url, transport=transport)
        self.auth = AuthClient(self.backend)
        self.sessions = SessionManager(self.auth, self.store, clock=clock)
        self.schedules = ScheduleClient(self.backend, self.sessions)
        self.cache = ScheduleCache(self.store)
        self.editor = BatchEditCoordinator(self.schedules, self.cache, self.sessions)
        self.reminders = reminders or ReminderService()
        self.reminder_settings = default_reminder_settings()
        self.check_interval = check_interval
        self.sessions.add_logout_listener(self._on_logout)

    async def start(self) -> Optional[CacheSource]:
        """Restore a persisted session and, if there is one, hydrate the cache"""
        logger.info("Scheduler starting up...")
        self.sessions.start_expiry_watch(self.check_interval)
        if self.sessions.restore() is None:
            logger.info("No active session, login required")
            return None
        try:
            return await self.sync()
        except AuthError:
            logger.warning("⚠️ Restored session was rejected, login required")
            return None

    async def login(self, username: str, password: str) -> Session:
        session = await self.sessions.login(username, password)
        await self.sync()
        return session

    async def register(
        self,
        username: str,
        password: str,
        confirm_password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> Session:
        session = await self.sessions.register(
            username, password, confirm_password, email=email, full_name=full_name
        )
        await self.sync()
        return session

    def logout(self) -> None:
        self.sessions.logout()

    async def sync(self) -> CacheSource:
        source = await self.cache.hydrate(self.schedules)
        if source == CacheSource.MIRROR:
            logger.warning("⚠️ Running disconnected from the schedule service")
        return source

    @property
    def connection_status(self) -> str:
        return self.cache.status.value

    async def health(self) -> HealthStatus:
        return await self.auth.health()

    async def load_reminder_settings(self) -> ReminderSettings:
        """Fetch the user's reminder settings, keeping defaults when unavailable"""
        user = self.sessions.current_user()
        if user is None:
            return self.reminder_settings
        try:
            self.reminder_settings = await self.schedules.get_reminder_settings(user.username)
        except (RemoteError, UnavailableError) as e:
            logger.warning(f"⚠️ Using default reminder settings: {e}")
        return self.reminder_settings

    async def send_due_reminders(self, now: Optional[datetime] = None) -> list[date]:
        return await self.reminders.send_due_reminders(self.cache, self.reminder_settings, now)

    def _on_logout(self, reason: str) -> None:
        self.editor.cancel()
        logger.info(f"Returned to login ({reason})")

    async def close(self) -> None:
        logger.info("Scheduler shutting down...")
        await self.sessions.stop_expiry_watch()
        await self.backend.aclose()


@asynccontextmanager
async def lifespan(**options) -> AsyncIterator[SchedulerApp]:
    app = SchedulerApp(**options)
    try:
        await app.start()
        yield app
    finally:
        await app.close()
