"""Tests for the session expiry clock."""

import asyncio

from attendance_dashboard.services.clock import SessionClock
from tests.conftest import ManualClock


def test_fires_once_for_armed_session() -> None:
    async def scenario() -> list[str]:
        manual = ManualClock()
        clock = SessionClock(sleep=manual.sleep)
        fired: list[str] = []
        clock.arm("session-1", fired.append, duration=120.0)

        await manual.advance(119.0)
        assert fired == []
        assert clock.armed_session_id == "session-1"

        await manual.advance(1.0)
        await manual.advance(600.0)
        assert clock.armed_session_id is None
        return fired

    assert asyncio.run(scenario()) == ["session-1"]


def test_arming_again_replaces_pending_callback() -> None:
    async def scenario() -> list[str]:
        manual = ManualClock()
        clock = SessionClock(sleep=manual.sleep)
        fired: list[str] = []
        clock.arm("session-1", fired.append, duration=120.0)
        await manual.advance(60.0)
        clock.arm("session-2", fired.append, duration=120.0)

        await manual.advance(60.0)
        assert fired == []
        await manual.advance(60.0)
        return fired

    assert asyncio.run(scenario()) == ["session-2"]


def test_disarm_cancels_pending_callback() -> None:
    async def scenario() -> list[str]:
        manual = ManualClock()
        clock = SessionClock(sleep=manual.sleep)
        fired: list[str] = []
        clock.arm("session-1", fired.append, duration=120.0)
        clock.disarm()
        await manual.advance(240.0)
        assert manual.pending == 0
        return fired

    assert asyncio.run(scenario()) == []


def test_awaits_async_callbacks() -> None:
    async def scenario() -> list[str]:
        manual = ManualClock()
        clock = SessionClock(sleep=manual.sleep)
        fired: list[str] = []

        async def callback(session_id: str) -> None:
            fired.append(session_id)

        clock.arm("session-1", callback, duration=1.0)
        await manual.advance(1.0)
        return fired

    assert asyncio.run(scenario()) == ["session-1"]
