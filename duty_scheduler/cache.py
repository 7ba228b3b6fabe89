"""
Local schedule cache
In-memory date -> Assignment mapping the UI renders from, mirrored to the
durable store after every confirmed mutation (write-through, best effort).
"""
import logging
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Union

from .errors import UnavailableError, ValidationError
from .schemas import Assignment
from .services.schedule_client import ScheduleClient, parse_schedule_map
from .shared.validators import parse_date_key
from .storage import JsonFileStore

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "schedule_snapshot"


class ConnectionStatus(str, Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class CacheSource(str, Enum):
    REMOTE = "remote"
    MIRROR = "mirror"


class ScheduleCache:
    """Single source of truth for rendering; mutated only through its own methods"""

    def __init__(self, mirror: JsonFileStore):
        self.mirror = mirror
        self._entries: dict[date, Assignment] = {}
        self.status = ConnectionStatus.UNKNOWN

    # ---------- reads ----------

    def get(self, day: Union[date, str]) -> Optional[Assignment]:
        return self._entries.get(parse_date_key(day))

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, (date, str)):
            return False
        try:
            return parse_date_key(day) in self._entries
        except ValidationError:
            return False

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()

    def snapshot(self) -> dict[date, Assignment]:
        """Copy of the current mapping"""
        return dict(self._entries)

    def for_month(self, year: int, month: int) -> dict[date, Assignment]:
        return {d: a for d, a in self._entries.items() if d.year == year and d.month == month}

    @property
    def is_degraded(self) -> bool:
        return self.status == ConnectionStatus.DISCONNECTED

    # ---------- sync ----------

    async def hydrate(self, client: ScheduleClient) -> CacheSource:
        """
        Load the whole schedule from the backend, or from the durable mirror
        when the backend does not answer. Whichever source answers replaces
        the cache wholesale; nothing is merged.

        Raises:
            AuthError: If there is no usable session
            RemoteError: If the backend rejected the request
        """
        try:
            schedules = await client.get_all()
        except UnavailableError:
            logger.warning("⚠️ Schedule service unreachable, loading local mirror")
            self._entries = self._read_mirror()
            self.status = ConnectionStatus.DISCONNECTED
            return CacheSource.MIRROR

        self._entries = dict(schedules)
        self.status = ConnectionStatus.CONNECTED
        self._write_mirror()
        logger.info(f"✅ Loaded {len(self._entries)} schedule(s) from backend")
        return CacheSource.REMOTE

    async def resync(self, client: ScheduleClient) -> CacheSource:
        """Full reload, used to close a cache/backend divergence"""
        return await self.hydrate(client)

    # ---------- mutations ----------

    def apply(self, assignments: Iterable[Assignment]) -> None:
        """Store confirmed assignments in one step"""
        for assignment in assignments:
            self._entries[assignment.date] = assignment
        self._write_mirror()

    def remove(self, days: Iterable[date]) -> None:
        """Drop confirmed deletions in one step"""
        for day in days:
            self._entries.pop(day, None)
        self._write_mirror()

    # ---------- durable mirror ----------

    def _write_mirror(self) -> None:
        payload = {d.isoformat(): a.to_wire() for d, a in self._entries.items()}
        try:
            self.mirror.set(SNAPSHOT_KEY, payload)
            logger.debug(f"✅ Mirror SET: {len(payload)} schedule(s)")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Schedule mirror write failed: {e}")

    def _read_mirror(self) -> dict[date, Assignment]:
        schedules = parse_schedule_map(self.mirror.get(SNAPSHOT_KEY, {}))
        logger.info(f"ℹ️ Loaded {len(schedules)} schedule(s) from local mirror")
        return schedules
