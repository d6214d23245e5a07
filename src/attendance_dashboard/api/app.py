"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from attendance_dashboard.api.schemas import CreateSessionRequest, ErrorResponse
from attendance_dashboard.app_logging import configure_logging
from attendance_dashboard.containers import AppContainer
from attendance_dashboard.domain.errors import AttendanceError
from attendance_dashboard.domain.reports import ReportSnapshot
from attendance_dashboard.services.dialogs import DashboardState, View
from attendance_dashboard.services.notices import NoticeLevel

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_STATUS_BY_KIND = {
    "validation": 400,
    "forbidden": 403,
    "not_found": 404,
    "invalid_transition": 409,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.report_sync.start()
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(
        request: Request, exc: AttendanceError
    ) -> JSONResponse:
        status_code = _STATUS_BY_KIND.get(exc.kind, 502)
        logger.info("Request %s failed: %s", request.url.path, exc.message)
        body = ErrorResponse(kind=exc.kind, message=exc.message)
        return JSONResponse(status_code=status_code, content=body.model_dump())

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/dashboard")
    async def dashboard(request: Request) -> dict[str, object]:
        """Return the derived dashboard state."""
        state_container: AppContainer = request.app.state.container
        return _serialize_state(state_container.dialogs.snapshot())

    @app.post("/sessions")
    async def create_session(
        payload: CreateSessionRequest, request: Request
    ) -> dict[str, object]:
        """Generate a QR code for a subject and classroom."""
        state_container: AppContainer = request.app.state.container
        await state_container.session_store.create_session(
            payload.subject, payload.classroom
        )
        return _serialize_state(state_container.dialogs.snapshot())

    @app.post("/sessions/current/close")
    async def close_qr(request: Request) -> dict[str, object]:
        """Dismiss the QR dialog and wait for the roster to settle."""
        state_container: AppContainer = request.app.state.container
        state_container.dialogs.close(View.QR)
        await state_container.session_store.join()
        return _serialize_state(state_container.dialogs.snapshot())

    @app.delete("/sessions/current")
    async def close_roster(request: Request) -> dict[str, object]:
        """Dismiss the roster dialog and drop the session."""
        state_container: AppContainer = request.app.state.container
        state_container.dialogs.close(View.ROSTER)
        return _serialize_state(state_container.dialogs.snapshot())

    @app.get("/sessions/current/export")
    async def export_session(request: Request) -> Response:
        """Download the current session's attendance spreadsheet."""
        state_container: AppContainer = request.app.state.container
        exported = await state_container.session_store.export_report()
        return Response(
            content=exported.content,
            media_type=XLSX_MEDIA_TYPE,
            headers={
                "Content-Disposition": f'attachment; filename="{exported.filename}"'
            },
        )

    @app.get("/reports")
    async def list_reports(request: Request) -> dict[str, object]:
        """Return the cached reports table."""
        report_sync = request.app.state.container.report_sync
        return {
            "reports": [_serialize_report_row(report) for report in report_sync.reports],
            "last_updated": _isoformat(report_sync.last_updated),
            "is_updating": report_sync.is_updating,
        }

    @app.post("/reports/refresh")
    async def refresh_reports(request: Request) -> dict[str, bool]:
        """Poll the server once outside the regular cadence."""
        report_sync = request.app.state.container.report_sync
        return {"published": await report_sync.tick()}

    @app.post("/reports/{subject}/select")
    async def select_report(subject: str, request: Request) -> dict[str, object]:
        """Open the report-detail dialog for a subject."""
        state_container: AppContainer = request.app.state.container
        state_container.report_sync.select(subject)
        return _serialize_state(state_container.dialogs.snapshot())

    @app.delete("/reports/selected")
    async def close_report(request: Request) -> dict[str, object]:
        """Close the report-detail dialog."""
        state_container: AppContainer = request.app.state.container
        state_container.dialogs.close(View.REPORT_DETAIL)
        return _serialize_state(state_container.dialogs.snapshot())

    @app.delete("/notices/{level}")
    async def dismiss_notice(level: NoticeLevel, request: Request) -> dict[str, str]:
        """Dismiss the error or success notice."""
        request.app.state.container.notices.dismiss(level)
        return {"status": "ok"}

    return app


def _serialize_state(state: DashboardState) -> dict[str, object]:
    selected = state.selected_report
    return {
        "visible": state.visible.value,
        "session_id": state.session_id,
        "qr_payload": state.qr_payload,
        "roster": [
            {"id": entry.student_id, "name": entry.name, "email": entry.email}
            for entry in state.roster
        ],
        "roster_loading": state.roster_loading,
        "roster_empty": state.roster_empty,
        "export_enabled": state.export_enabled,
        "selected_report": (
            {
                "subject": selected.subject,
                "total_sessions": selected.total_sessions,
                "students": selected.rows(),
            }
            if selected is not None
            else None
        ),
        "reports": [_serialize_report_row(report) for report in state.reports],
        "notices": [
            {"level": notice.level.value, "message": notice.message, "kind": notice.kind}
            for notice in state.notices
        ],
        "last_updated": _isoformat(state.last_updated),
        "is_updating": state.is_updating,
    }


def _serialize_report_row(report: ReportSnapshot) -> dict[str, object]:
    return {
        "subject": report.subject,
        "total_sessions": report.total_sessions,
        "total_students": report.student_count,
    }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
