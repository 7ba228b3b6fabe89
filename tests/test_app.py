from datetime import date

import httpx
import pytest

from duty_scheduler.cache import SNAPSHOT_KEY, CacheSource
from duty_scheduler.main import SchedulerApp, lifespan
from duty_scheduler.schemas import ReminderSettings

from .conftest import PASSWORD


async def test_login_hydrates_cache(app, backend, assignment_row):
    backend.schedules["2025-07-14"] = assignment_row

    await app.login("alice", PASSWORD)

    assert app.connection_status == "connected"
    assert date(2025, 7, 14) in app.cache


async def test_startup_without_session_requires_login(app, backend):
    assert await app.start() is None
    assert app.cache.status.value == "unknown"
    assert backend.calls == []


async def test_startup_with_backend_down_uses_snapshot(backend, clock, state_file, assignment_row):
    transport = httpx.MockTransport(backend.handler)
    first = SchedulerApp(base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock)
    await first.login("alice", PASSWORD)
    await first.close()
    first.store.set(SNAPSHOT_KEY, {"2025-07-14": assignment_row})
    backend.offline = True

    async with lifespan(
        base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock
    ) as restarted:
        assert restarted.sessions.current_session() is not None
        assert restarted.connection_status == "disconnected"
        assert restarted.cache.snapshot()[date(2025, 7, 14)].employee_name == "Anna Nowak"


async def test_startup_with_revoked_token_falls_back_to_login(backend, clock, state_file):
    transport = httpx.MockTransport(backend.handler)
    first = SchedulerApp(base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock)
    await first.login("alice", PASSWORD)
    await first.close()
    backend.revoke_tokens()

    second = SchedulerApp(base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock)
    try:
        assert await second.start() is None
        assert second.sessions.current_session() is None
    finally:
        await second.close()


async def test_sync_reports_source(logged_in, backend):
    assert await logged_in.sync() == CacheSource.REMOTE
    backend.offline = True
    assert await logged_in.sync() == CacheSource.MIRROR


async def test_logout_clears_selection(logged_in):
    logged_in.editor.selection.select(date(2025, 7, 14))
    logged_in.logout()
    assert logged_in.editor.selection.is_empty


async def test_reminder_settings_fall_back_to_defaults(logged_in, backend):
    defaults = logged_in.reminder_settings
    assert await logged_in.load_reminder_settings() == defaults

    stored = ReminderSettings(enabled=False, hours_before=5)
    backend.reminders["alice"] = stored.model_dump(mode="json")
    assert await logged_in.load_reminder_settings() == stored


async def test_register_then_use(app, backend):
    await app.register("bob", "password1", "password1")
    assert app.sessions.current_user().username == "bob"
    assert app.connection_status == "connected"


@pytest.mark.parametrize("status", [500, 403])
async def test_remote_error_on_hydrate_propagates(logged_in, backend, status):
    from duty_scheduler.errors import RemoteError

    backend.fail("GET", "/api/schedules", status)
    with pytest.raises(RemoteError):
        await logged_in.sync()


async def test_failed_startup_releases_resources(backend, clock, state_file, monkeypatch):
    from duty_scheduler.errors import RemoteError

    transport = httpx.MockTransport(backend.handler)
    first = SchedulerApp(base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock)
    await first.login("alice", PASSWORD)
    await first.close()
    backend.fail("GET", "/api/schedules", 500)

    closed = []
    close = SchedulerApp.close

    async def recording_close(self):
        closed.append(self)
        await close(self)

    monkeypatch.setattr(SchedulerApp, "close", recording_close)

    with pytest.raises(RemoteError):
        async with lifespan(
            base_url="http://scheduler.test", state_file=state_file, transport=transport, clock=clock
        ):
            pass

    assert len(closed) == 1
    assert not closed[0].sessions.is_watching
    assert closed[0].backend.is_closed
