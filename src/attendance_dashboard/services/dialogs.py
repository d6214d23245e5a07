"""Derivation of the single visible dashboard dialog."""

import enum
from dataclasses import dataclass
from datetime import datetime

from attendance_dashboard.domain.reports import ReportSnapshot
from attendance_dashboard.domain.sessions import RosterEntry
from attendance_dashboard.services.notices import Notice
from attendance_dashboard.services.reports import ReportSync
from attendance_dashboard.services.sessions import SessionStore


class View(enum.Enum):
    """Mutually exclusive dialogs, in rendering priority order."""

    NONE = "none"
    QR = "qr"
    ROSTER = "roster"
    REPORT_DETAIL = "report_detail"


_PRIORITY = {View.QR: 0, View.ROSTER: 1, View.REPORT_DETAIL: 2}


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard needs to render one frame."""

    visible: View
    session_id: str | None
    qr_payload: str | None
    roster: list[RosterEntry]
    roster_loading: bool
    roster_empty: bool
    export_enabled: bool
    selected_report: ReportSnapshot | None
    reports: list[ReportSnapshot]
    notices: list[Notice]
    last_updated: datetime | None
    is_updating: bool


@dataclass
class DialogCoordinator:
    """Chooses which dialog is visible from session and report state.

    Holds no state of its own. When several dialogs qualify, the one opened
    last wins; ties fall back to QR, then roster, then report detail.
    """

    sessions: SessionStore
    reports: ReportSync

    def visible_view(self) -> View:
        candidates: list[tuple[int, View]] = []
        session = self.sessions.current
        if session is not None:
            if session.is_active:
                candidates.append((session.open_order, View.QR))
            elif session.is_expired and not session.roster_loading:
                candidates.append((session.open_order, View.ROSTER))
        if self.reports.selected is not None:
            candidates.append((self.reports.selected_order, View.REPORT_DETAIL))
        if not candidates:
            return View.NONE
        _, view = max(candidates, key=lambda item: (item[0], -_PRIORITY[item[1]]))
        return view

    def close(self, view: View) -> None:
        """Close ``view``, clearing only that view's selection state."""
        if view is View.QR:
            self.sessions.close_qr()
        elif view is View.ROSTER:
            session = self.sessions.current
            if session is not None and session.is_expired:
                self.sessions.clear()
        elif view is View.REPORT_DETAIL:
            self.reports.close_detail()

    def snapshot(self) -> DashboardState:
        session = self.sessions.current
        roster = list(session.roster) if session is not None else []
        roster_loading = session.roster_loading if session is not None else False
        expired = session is not None and session.is_expired
        return DashboardState(
            visible=self.visible_view(),
            session_id=session.session_id if session is not None else None,
            qr_payload=session.qr_payload if session is not None else None,
            roster=roster,
            roster_loading=roster_loading,
            roster_empty=expired and not roster_loading and not roster,
            export_enabled=expired and not roster_loading,
            selected_report=self.reports.selected,
            reports=self.reports.reports,
            notices=self.sessions.notices.active(),
            last_updated=self.reports.last_updated,
            is_updating=self.reports.is_updating,
        )
