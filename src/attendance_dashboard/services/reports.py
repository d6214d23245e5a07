"""Polling sync of the per-subject attendance report cache."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pydantic

from attendance_dashboard.adapters.attendance_client import AttendanceClient
from attendance_dashboard.domain.errors import AttendanceError, FetchError, NotFoundError
from attendance_dashboard.domain.reports import ReportSnapshot, parse_report_set
from attendance_dashboard.domain.sessions import ViewOrder
from attendance_dashboard.services.notices import NoticeBoard

_logger = logging.getLogger(__name__)

ReportSet = dict[str, ReportSnapshot]
Subscriber = Callable[[ReportSet], None]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ReportSync:
    """Keeps a cached report set in sync with the server.

    Ticks never overlap: a tick that starts while another poll is in flight
    is dropped. The cache is replaced, and subscribers notified, only when the
    fetched set differs from the cached one.
    """

    client: AttendanceClient
    notices: NoticeBoard
    poll_interval_seconds: float = 5.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    now: Callable[[], datetime] = _utcnow
    view_order: ViewOrder = field(default_factory=ViewOrder)
    _cache: ReportSet = field(default_factory=dict, init=False)
    _last_updated: datetime | None = field(default=None, init=False)
    _in_flight: bool = field(default=False, init=False)
    _selected: ReportSnapshot | None = field(default=None, init=False)
    _selected_order: int = field(default=0, init=False)
    _subscribers: list[Subscriber] = field(default_factory=list, init=False)
    _loop_task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _tick_tasks: set[asyncio.Task] = field(
        default_factory=set, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self._last_updated = self.now()

    @property
    def snapshots(self) -> ReportSet:
        return self._cache

    @property
    def reports(self) -> list[ReportSnapshot]:
        """Return cached reports in server order for the reports table."""
        return list(self._cache.values())

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    @property
    def is_updating(self) -> bool:
        return self._in_flight

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def selected(self) -> ReportSnapshot | None:
        return self._selected

    @property
    def selected_order(self) -> int:
        return self._selected_order

    async def poll_once(self) -> ReportSet:
        """Fetch and validate the current report set."""
        raw = await self.client.get_report_snapshots()
        try:
            return parse_report_set(raw)
        except pydantic.ValidationError as exc:
            raise FetchError("Failed to fetch reports") from exc

    async def tick(self) -> bool:
        """Run one poll unless another is in flight.

        Returns True when the cache was replaced.
        """
        if self._in_flight:
            _logger.debug("Report poll still in flight, skipping tick")
            return False
        self._in_flight = True
        try:
            snapshots = await self.poll_once()
        except AttendanceError as exc:
            _logger.warning("Report poll failed: %s", exc)
            self.notices.post_exception(exc, "Failed to fetch reports")
            return False
        finally:
            self._in_flight = False
        return self._apply(snapshots)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a listener for published report sets."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def select(self, subject: str) -> ReportSnapshot:
        """Open the report-detail view for ``subject``."""
        snapshot = self._cache.get(subject)
        if snapshot is None:
            raise NotFoundError(f"No attendance report for {subject}.")
        self._selected = snapshot
        self._selected_order = self.view_order.next()
        return snapshot

    def close_detail(self) -> None:
        self._selected = None

    def start(self) -> None:
        """Poll once now, then every ``poll_interval_seconds``."""
        if self.is_running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Stop polling and cancel outstanding ticks."""
        tasks = [*self._tick_tasks]
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            task = asyncio.get_running_loop().create_task(self._safe_tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)
            await self.sleep(self.poll_interval_seconds)

    async def _safe_tick(self) -> None:
        try:
            await self.tick()
        except Exception:
            _logger.exception("Report poll crashed")

    def _apply(self, snapshots: ReportSet) -> bool:
        # Subject order is part of the published table.
        if list(snapshots.items()) == list(self._cache.items()):
            return False
        self._cache = snapshots
        self._last_updated = self.now()
        if self._selected is not None:
            refreshed = snapshots.get(self._selected.subject)
            if refreshed is not None:
                self._selected = refreshed
        _logger.info("Published %s attendance reports", len(snapshots))
        for subscriber in list(self._subscribers):
            subscriber(snapshots)
        return True
