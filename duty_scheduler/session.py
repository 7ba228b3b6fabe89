"""
Session Manager

Owns the bearer token, its expiry and the authenticated user. A session is
created by a successful login, never refreshed silently, and destroyed by an
explicit logout, by expiry detection, or by an unauthorized response from
any remote call. The token, its expiry epoch and the user record are the only
persisted fields and are always cleared together.
"""
import asyncio
import contextlib
import logging
import time
from datetime import timedelta
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from .api_client import AuthClient
from .config import SESSION_CHECK_INTERVAL_SECONDS
from .errors import AuthError, ScheduleError, ValidationError
from .schemas import RegisterRequest, Session, User
from .shared.validators import validate_new_password
from .storage import JsonFileStore

logger = logging.getLogger(__name__)

TOKEN_KEY = "access_token"
EXPIRES_KEY = "token_expires_at"
USER_KEY = "user_data"

LogoutListener = Callable[[str], None]


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    """Single active session plus the policy that tears it down"""

    def __init__(
        self,
        auth: AuthClient,
        store: JsonFileStore,
        clock: Callable[[], int] = now_ms,
    ):
        self.auth = auth
        self.store = store
        self.clock = clock
        self._session: Optional[Session] = None
        self._listeners: list[LogoutListener] = []
        self._watch_task: Optional[asyncio.Task] = None

    # ---------- lifecycle ----------

    async def login(self, username: str, password: str) -> Session:
        """
        Log in and replace any existing session.

        Raises:
            AuthError: On invalid credentials or when the backend is unreachable
        """
        try:
            result = await self.auth.login(username, password)
        except ScheduleError as e:
            self.logout(reason="login_failed")
            if isinstance(e, AuthError):
                raise
            raise AuthError(e.message) from e

        session = Session(
            token=result.access_token,
            user=result.user,
            expires_at_ms=self.clock() + result.expires_in * 1000,
        )
        self._session = session
        self._persist(session)
        logger.info(f"✅ Logged in as {session.user.username} (expires in {result.expires_in}s)")
        return session

    async def register(
        self,
        username: str,
        password: str,
        confirm_password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> Session:
        """Create an account, then log in with the same credentials"""
        if not username or not username.strip():
            raise ValidationError("Username is required")
        validate_new_password(password, confirm_password)

        await self.auth.register(
            RegisterRequest(
                username=username.strip(),
                password=password,
                email=email or None,
                full_name=full_name or None,
            )
        )
        logger.info(f"✅ Registered user {username.strip()}")
        return await self.login(username.strip(), password)

    async def registration_enabled(self) -> bool:
        """Whether public self-registration is open; unknown reads as closed"""
        try:
            status = await self.auth.registration_status()
        except ScheduleError as e:
            logger.warning(f"⚠️ Failed to check registration status: {e}")
            return False
        return status.public_registration_enabled

    def restore(self) -> Optional[Session]:
        """Rebuild the session persisted by a previous process, if still valid"""
        token = self.store.get(TOKEN_KEY)
        expires_at = self.store.get(EXPIRES_KEY)
        user_data = self.store.get(USER_KEY)
        if not token or expires_at is None or user_data is None:
            self._clear_persisted()
            return None

        try:
            session = Session(
                token=token, user=User.model_validate(user_data), expires_at_ms=int(expires_at)
            )
        except (PydanticValidationError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Discarding unreadable persisted session: {e}")
            self._clear_persisted()
            return None

        if self.clock() >= session.expires_at_ms:
            logger.info("ℹ️ Persisted session already expired")
            self._clear_persisted()
            return None

        self._session = session
        logger.info(f"✅ Restored session for {session.user.username}")
        return session

    def current_session(self) -> Optional[Session]:
        """The active session, or None. A stale session is logged out on the spot."""
        session = self._session
        if session is None:
            return None
        if self.clock() < session.expires_at_ms:
            return session
        logger.info(f"⚠️ Session for {session.user.username} expired")
        self.logout(reason="expired")
        return None

    def current_user(self) -> Optional[User]:
        session = self.current_session()
        return session.user if session else None

    @property
    def is_authenticated(self) -> bool:
        return self.current_session() is not None

    def remaining_time(self) -> timedelta:
        session = self._session
        if session is None:
            return timedelta(0)
        return timedelta(milliseconds=max(0, session.expires_at_ms - self.clock()))

    def logout(self, reason: str = "explicit") -> None:
        """Clear the session unconditionally. Idempotent."""
        had_session = self._session is not None
        self._session = None
        self._clear_persisted()
        if not had_session:
            return
        logger.info(f"👋 Logged out ({reason})")
        for listener in list(self._listeners):
            listener(reason)

    def add_logout_listener(self, listener: LogoutListener) -> None:
        self._listeners.append(listener)

    # ---------- expiry watch ----------

    def check_expiry(self) -> None:
        if self._session is not None:
            self.current_session()

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def start_expiry_watch(self, interval: float = SESSION_CHECK_INTERVAL_SECONDS) -> None:
        """Poll for expiry on a fixed period. Needs a running event loop."""
        if self.is_watching:
            return
        self._watch_task = asyncio.create_task(self._watch_expiry(interval))

    async def _watch_expiry(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.check_expiry()

    async def stop_expiry_watch(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # ---------- persistence ----------

    def _persist(self, session: Session) -> None:
        try:
            self.store.set(TOKEN_KEY, session.token)
            self.store.set(EXPIRES_KEY, session.expires_at_ms)
            self.store.set(USER_KEY, session.user.model_dump(mode="json"))
        except OSError as e:
            logger.warning(f"⚠️ Could not persist session: {e}")

    def _clear_persisted(self) -> None:
        try:
            self.store.delete(TOKEN_KEY, EXPIRES_KEY, USER_KEY)
        except OSError as e:
            logger.warning(f"⚠️ Could not clear persisted session: {e}")
