"""Dependency container wiring for the dashboard."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from attendance_dashboard.adapters.attendance_client import (
    AttendanceClient,
    HttpxAttendanceClient,
)
from attendance_dashboard.config import Settings
from attendance_dashboard.domain.sessions import ViewOrder
from attendance_dashboard.services.clock import SessionClock
from attendance_dashboard.services.dialogs import DialogCoordinator
from attendance_dashboard.services.notices import NoticeBoard
from attendance_dashboard.services.reports import ReportSync
from attendance_dashboard.services.retry import RetryPolicy
from attendance_dashboard.services.sessions import SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    attendance_client: AttendanceClient
    notices: NoticeBoard
    session_store: SessionStore
    report_sync: ReportSync
    dialogs: DialogCoordinator
    close_resources: Callable[[], Awaitable[None]]


def build_services(
    settings: Settings, client: AttendanceClient
) -> tuple[NoticeBoard, SessionStore, ReportSync, DialogCoordinator]:
    """Wire the dashboard services around an attendance client."""
    notices = NoticeBoard()
    view_order = ViewOrder()
    report_sync = ReportSync(
        client=client,
        notices=notices,
        poll_interval_seconds=settings.poll_interval_seconds,
        view_order=view_order,
    )
    session_store = SessionStore(
        client=client,
        clock=SessionClock(),
        retry_policy=RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            delay_seconds=settings.retry_delay_seconds,
        ),
        notices=notices,
        session_ttl_seconds=settings.session_ttl_seconds,
        roster_settle_delay_seconds=settings.roster_settle_delay_seconds,
        on_session_created=report_sync.tick,
        view_order=view_order,
    )
    dialogs = DialogCoordinator(sessions=session_store, reports=report_sync)
    return notices, session_store, report_sync, dialogs


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    client = HttpxAttendanceClient.create(
        base_url=resolved_settings.api_base_url,
        api_token=resolved_settings.api_token,
        timeout=resolved_settings.request_timeout_seconds,
    )
    notices, session_store, report_sync, dialogs = build_services(
        resolved_settings, client
    )

    async def close_resources() -> None:
        await report_sync.stop()
        await session_store.aclose()
        await client.close()

    return AppContainer(
        settings=resolved_settings,
        attendance_client=client,
        notices=notices,
        session_store=session_store,
        report_sync=report_sync,
        dialogs=dialogs,
        close_resources=close_resources,
    )
