"""Tests for container wiring."""

import asyncio

from attendance_dashboard.adapters.attendance_client import HttpxAttendanceClient
from attendance_dashboard.containers import build_container


def test_build_container_wires_shared_notices(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.attendance_client, HttpxAttendanceClient)
    assert container.session_store.notices is container.notices
    assert container.report_sync.notices is container.notices
    assert container.dialogs.sessions is container.session_store
    assert container.session_store.retry_policy.max_attempts == 3
    assert container.report_sync.poll_interval_seconds == 5.0
    asyncio.run(container.close_resources())


def test_build_services_shares_one_view_order(settings) -> None:
    container = build_container(settings)
    other = build_container(settings)

    assert container.session_store.view_order is container.report_sync.view_order
    assert container.session_store.view_order is not other.session_store.view_order
    asyncio.run(container.close_resources())
    asyncio.run(other.close_resources())
