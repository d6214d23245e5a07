"""Lifecycle of the current QR attendance session."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pydantic

from attendance_dashboard.adapters.attendance_client import AttendanceClient
from attendance_dashboard.domain.errors import (
    AttendanceError,
    EmptyResultError,
    FetchError,
    NotFoundError,
    ValidationError,
)
from attendance_dashboard.domain.payloads import CreatedSession, SessionRoster
from attendance_dashboard.domain.sessions import (
    RosterEntry,
    Session,
    SessionStatus,
    ViewOrder,
)
from attendance_dashboard.services.clock import SessionClock
from attendance_dashboard.services.notices import NoticeBoard
from attendance_dashboard.services.retry import RetryPolicy

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class ExportedReport:
    """Spreadsheet export of a session."""

    filename: str
    content: bytes


@dataclass
class SessionStore:
    """Owns the single current session and mediates all of its transitions.

    Every asynchronous completion (clock expiry, roster fetch) re-checks that
    the session it was started for is still the current one before writing.
    """

    client: AttendanceClient
    clock: SessionClock
    retry_policy: RetryPolicy
    notices: NoticeBoard
    session_ttl_seconds: float = 120.0
    roster_settle_delay_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    now: Callable[[], datetime] = _utcnow
    on_session_created: Callable[[], Awaitable[object]] | None = None
    view_order: ViewOrder = field(default_factory=ViewOrder)
    _current: Session | None = field(default=None, init=False)
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    @property
    def current(self) -> Session | None:
        return self._current

    async def create_session(self, subject: str, classroom: str) -> Session:
        """Generate a QR code and install it as the current, active session."""
        subject, classroom = subject.strip(), classroom.strip()
        if not subject or not classroom:
            error = ValidationError()
            self.notices.post_exception(error, error.message)
            raise error

        try:
            raw = await self.client.create_session(subject, classroom)
            created = CreatedSession.model_validate(raw)
        except pydantic.ValidationError as exc:
            error = FetchError("Failed to generate QR code")
            self.notices.post_exception(error, error.message)
            raise error from exc
        except AttendanceError as exc:
            self.notices.post_exception(exc, "Failed to generate QR code")
            raise

        self._discard_current()
        session = Session.start(
            session_id=created.session_id,
            subject=subject,
            classroom=classroom,
            qr_payload=created.qr_code,
            created_at=self.now(),
            ttl_seconds=self.session_ttl_seconds,
            open_order=self.view_order.next(),
        )
        self._current = session
        self.clock.arm(
            session.session_id, self._on_clock_expiry, self.session_ttl_seconds
        )
        _logger.info(
            "Session %s created for %s in %s", session.session_id, subject, classroom
        )
        self.notices.post_success("QR code generated successfully!")
        if self.on_session_created is not None:
            self._spawn(self._run_hook(self.on_session_created))
        return session

    def expire(self, session_id: str, *, settle_delay: float = 0.0) -> bool:
        """Expire the current session and start fetching its roster.

        Returns False without side effects when ``session_id`` is stale or the
        session already left the active state.
        """
        session = self._current
        if session is None or session.session_id != session_id:
            _logger.info("Ignoring expiry for stale session %s", session_id)
            return False
        if not session.is_active:
            return False
        session.transition(SessionStatus.EXPIRED)
        session.roster_loading = True
        _logger.info("Session %s expired", session_id)
        self._spawn(self._fetch_roster(session, settle_delay))
        return True

    def close_qr(self) -> bool:
        """Handle explicit dismissal of the QR view."""
        session = self._current
        if session is None or not session.is_active:
            return False
        self.clock.disarm()
        return self.expire(session.session_id)

    def set_roster(
        self,
        session_id: str,
        roster: Iterable[RosterEntry],
        *,
        server_expired: bool = False,
        failed: bool = False,
    ) -> bool:
        """Apply a settled roster to the session it was fetched for."""
        session = self._current
        if session is None or session.session_id != session_id:
            _logger.info("Dropping roster for stale session %s", session_id)
            return False
        if not session.is_expired or not session.roster_loading:
            return False
        session.roster = list(roster)
        session.roster_loading = False
        session.roster_failed = failed
        session.server_expired = server_expired
        if server_expired:
            self.notices.post_success(
                f"This session has expired. Showing {len(session.roster)} "
                "students who marked attendance."
            )
        return True

    def clear(self) -> None:
        """Drop the current session entirely."""
        session = self._current
        if session is None:
            return
        self.clock.disarm()
        session.transition(SessionStatus.CLEARED)
        self._current = None
        _logger.info("Session %s cleared", session.session_id)

    async def export_report(self) -> ExportedReport:
        """Download the spreadsheet for the current session."""
        session = self._current
        if session is None:
            error = NotFoundError("There is no session to export.")
            self.notices.post_exception(error, error.message)
            raise error
        self.notices.clear_error()
        self.notices.post_success("Preparing Excel file for download...")
        try:
            content = await self.client.export_session_report(session.session_id)
            if not content:
                raise EmptyResultError()
        except AttendanceError as exc:
            self.notices.post_exception(exc, "Failed to download Excel file")
            raise
        self.notices.post_success("Excel file downloaded successfully!")
        return ExportedReport(
            filename=f"attendance_{self.now().date().isoformat()}.xlsx",
            content=content,
        )

    async def join(self) -> None:
        """Wait for all background work started by the store."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Disarm the clock and cancel outstanding roster fetches."""
        self.clock.disarm()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _discard_current(self) -> None:
        self.clock.disarm()
        previous = self._current
        if previous is not None:
            previous.transition(SessionStatus.CLEARED)
            _logger.info("Session %s superseded", previous.session_id)
        self._current = None

    async def _on_clock_expiry(self, session_id: str) -> None:
        self.expire(session_id, settle_delay=self.roster_settle_delay_seconds)

    async def _fetch_roster(self, session: Session, settle_delay: float) -> None:
        session_id = session.session_id
        if settle_delay > 0:
            await self.sleep(settle_delay)
        if self._current is session:
            self.notices.clear_error()
        try:
            raw = await self.retry_policy.run(
                lambda: self.client.get_session_roster(session_id),
                action=f"Roster fetch for session {session_id}",
            )
            roster = SessionRoster.model_validate(raw)
        except Exception as exc:
            if not isinstance(exc, AttendanceError | pydantic.ValidationError):
                _logger.exception("Unexpected roster failure for session %s", session_id)
            if self._current is session:
                self.notices.post_exception(
                    exc
                    if isinstance(exc, AttendanceError)
                    else FetchError("Failed to fetch session details"),
                    "Failed to fetch session details",
                )
            self.set_roster(session_id, [], failed=True)
            return
        self.set_roster(session_id, roster.entries(), server_expired=roster.is_expired)

    async def _run_hook(self, hook: Callable[[], Awaitable[object]]) -> None:
        try:
            await hook()
        except Exception:
            _logger.exception("Session created hook failed")

    def _spawn(self, coro: Coroutine[object, object, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
