"""Shared test fixtures."""

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from attendance_dashboard.adapters.attendance_client import AttendanceClient
from attendance_dashboard.config import Settings
from attendance_dashboard.containers import AppContainer, build_services
from attendance_dashboard.domain.sessions import ViewOrder
from attendance_dashboard.services.clock import SessionClock
from attendance_dashboard.services.dialogs import DialogCoordinator
from attendance_dashboard.services.notices import NoticeBoard
from attendance_dashboard.services.reports import ReportSync
from attendance_dashboard.services.retry import RetryPolicy
from attendance_dashboard.services.sessions import SessionStore


async def settle(rounds: int = 50) -> None:
    """Let every runnable task on the loop make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Stand-in for ``asyncio.sleep`` whose time only moves on ``advance``."""

    def __init__(self, start: datetime | None = None) -> None:
        self.start = start or datetime(2024, 9, 2, 9, 0, tzinfo=UTC)
        self.elapsed = 0.0
        self.sleeps: list[float] = []
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []
        self._order = itertools.count()

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append((self.elapsed + seconds, next(self._order), future))
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._waiters if not future.done())

    async def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        await settle()
        while True:
            self._waiters = [w for w in self._waiters if not w[2].done()]
            due = [w for w in self._waiters if w[0] <= target]
            if not due:
                break
            deadline, _, future = min(due, key=lambda w: (w[0], w[1]))
            self.elapsed = max(self.elapsed, deadline)
            future.set_result(None)
            await settle()
        self.elapsed = target
        await settle()


def roster_payload(
    students: list[dict[str, str]] | None = None, status: str = "expired"
) -> dict[str, object]:
    return {"status": status, "students": students or []}


def report_payload(
    attendance_count: int = 3, total_sessions: int = 4
) -> dict[str, object]:
    return {
        "Math": {
            "totalSessions": total_sessions,
            "students": {
                "s-1": {
                    "name": "Ada Lovelace",
                    "email": "ada@example.edu",
                    "attendanceCount": attendance_count,
                },
                "s-2": {
                    "name": "Alan Turing",
                    "email": "alan@example.edu",
                    "attendanceCount": 4,
                    "attendancePercentage": 100.0,
                },
            },
        },
        "Physics": {"totalSessions": 0, "students": {}},
    }


@dataclass
class FakeAttendanceClient(AttendanceClient):
    """In-memory attendance backend.

    Queued roster and report responses are consumed in order; exceptions in
    the queues are raised instead of returned.
    """

    created: list[tuple[str, str]] = field(default_factory=list)
    create_error: Exception | None = None
    roster_responses: list[object] = field(default_factory=list)
    default_roster: dict[str, object] = field(default_factory=roster_payload)
    roster_calls: list[str] = field(default_factory=list)
    report_responses: list[object] = field(default_factory=list)
    report_payload: dict[str, object] = field(default_factory=report_payload)
    report_calls: int = 0
    report_gate: asyncio.Event | None = None
    export_content: bytes = b"PK\x03\x04xlsx"
    export_error: Exception | None = None
    exported: list[str] = field(default_factory=list)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    async def create_session(self, subject: str, classroom: str) -> dict[str, object]:
        if self.create_error is not None:
            raise self.create_error
        self.created.append((subject, classroom))
        number = next(self._ids)
        return {"sessionId": f"session-{number}", "qrCode": f"qr-payload-{number}"}

    async def get_session_roster(self, session_id: str) -> dict[str, object]:
        self.roster_calls.append(session_id)
        response = (
            self.roster_responses.pop(0)
            if self.roster_responses
            else self.default_roster
        )
        if isinstance(response, Exception):
            raise response
        return response

    async def get_report_snapshots(self) -> dict[str, object]:
        self.report_calls += 1
        if self.report_gate is not None:
            await self.report_gate.wait()
        response = (
            self.report_responses.pop(0)
            if self.report_responses
            else self.report_payload
        )
        if isinstance(response, Exception):
            raise response
        return response

    async def export_session_report(self, session_id: str) -> bytes:
        self.exported.append(session_id)
        if self.export_error is not None:
            raise self.export_error
        return self.export_content


@dataclass
class Dashboard:
    """Services wired around a fake client and a manual clock."""

    client: FakeAttendanceClient
    clock: ManualClock
    notices: NoticeBoard
    sessions: SessionStore
    reports: ReportSync
    dialogs: DialogCoordinator


def build_dashboard(
    client: FakeAttendanceClient | None = None,
    clock: ManualClock | None = None,
    *,
    refresh_reports_on_create: bool = False,
) -> Dashboard:
    client = client or FakeAttendanceClient()
    clock = clock or ManualClock()
    notices = NoticeBoard()
    view_order = ViewOrder()
    reports = ReportSync(
        client=client,
        notices=notices,
        sleep=clock.sleep,
        now=clock.now,
        view_order=view_order,
    )
    sessions = SessionStore(
        client=client,
        clock=SessionClock(sleep=clock.sleep),
        retry_policy=RetryPolicy(max_attempts=3, delay_seconds=1.0, sleep=clock.sleep),
        notices=notices,
        sleep=clock.sleep,
        now=clock.now,
        on_session_created=reports.tick if refresh_reports_on_create else None,
        view_order=view_order,
    )
    dialogs = DialogCoordinator(sessions=sessions, reports=reports)
    return Dashboard(
        client=client,
        clock=clock,
        notices=notices,
        sessions=sessions,
        reports=reports,
        dialogs=dialogs,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://attendance.test",
        api_token="test-token",
        retry_delay_seconds=0,
        roster_settle_delay_seconds=0,
    )


@pytest.fixture
def attendance_client() -> FakeAttendanceClient:
    return FakeAttendanceClient()


@pytest.fixture
def container(
    settings: Settings, attendance_client: FakeAttendanceClient
) -> AppContainer:
    notices, session_store, report_sync, dialogs = build_services(
        settings, attendance_client
    )

    async def close_resources() -> None:
        await report_sync.stop()
        await session_store.aclose()

    return AppContainer(
        settings=settings,
        attendance_client=attendance_client,
        notices=notices,
        session_store=session_store,
        report_sync=report_sync,
        dialogs=dialogs,
        close_resources=close_resources,
    )
