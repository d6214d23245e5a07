"""Attendance backend API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from attendance_dashboard.domain.errors import (
    EmptyResultError,
    FetchError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    TransientServerError,
    ValidationError,
)

HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE = 422
HTTP_SERVER_ERROR = 500


class AttendanceClient(Protocol):
    """Interface for the attendance backend operations."""

    async def create_session(self, subject: str, classroom: str) -> dict[str, object]:
        """Create a QR session and return the raw response."""

    async def get_session_roster(self, session_id: str) -> dict[str, object]:
        """Return the status and roster of a session."""

    async def get_report_snapshots(self) -> dict[str, object]:
        """Return per-subject attendance reports."""

    async def export_session_report(self, session_id: str) -> bytes:
        """Return the spreadsheet export of a session."""


@dataclass
class HttpxAttendanceClient(AttendanceClient):
    """HTTPX-backed attendance client."""

    base_url: str
    api_token: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(
        cls, base_url: str, api_token: str, timeout: float = 10.0
    ) -> "HttpxAttendanceClient":
        """Create an attendance client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            api_token=api_token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def create_session(self, subject: str, classroom: str) -> dict[str, object]:
        """Generate a QR code for a subject and classroom."""
        response = await self._request(
            "POST",
            "/api/attendance/generate-qr",
            json={"subject": subject, "classRoom": classroom},
            fallback="Failed to generate QR code",
        )
        return _json(response, "Failed to generate QR code")

    async def get_session_roster(self, session_id: str) -> dict[str, object]:
        """Fetch the students who scanned a session."""
        response = await self._request(
            "GET",
            f"/api/attendance/session/{session_id}",
            fallback="Failed to fetch session details",
            session_scoped=True,
        )
        return _json(response, "Failed to fetch session details")

    async def get_report_snapshots(self) -> dict[str, object]:
        """Fetch the per-subject attendance report."""
        response = await self._request(
            "GET", "/api/attendance/report", fallback="Failed to fetch reports"
        )
        return _json(response, "Failed to fetch reports")

    async def export_session_report(self, session_id: str) -> bytes:
        """Download the spreadsheet export of a session."""
        response = await self._request(
            "GET",
            f"/api/attendance/export/{session_id}",
            fallback="Failed to download Excel file",
        )
        if not response.content:
            raise EmptyResultError()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        json: object | None = None,
        session_scoped: bool = False,
    ) -> httpx.Response:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or None) from exc
        if response.is_success:
            return response
        raise _error_for_response(response, fallback, session_scoped=session_scoped)


def _json(response: httpx.Response, fallback: str) -> dict[str, object]:
    try:
        return response.json()
    except ValueError as exc:
        raise FetchError(fallback) from exc


def _error_for_response(
    response: httpx.Response, fallback: str, *, session_scoped: bool = False
) -> Exception:
    """Map a non-2xx response onto the error taxonomy.

    Session lookups keep the session-specific messages; every other call
    reports its own fallback text with the status code.
    """
    status_code = response.status_code
    status_message = f"{fallback} (Status: {status_code})"
    if status_code == HTTP_NOT_FOUND:
        return NotFoundError(None if session_scoped else status_message)
    if status_code == HTTP_FORBIDDEN:
        return ForbiddenError(None if session_scoped else status_message)
    if status_code >= HTTP_SERVER_ERROR:
        return TransientServerError(None if session_scoped else status_message)
    message = _server_message(response) or status_message
    if status_code in {HTTP_BAD_REQUEST, HTTP_UNPROCESSABLE}:
        return ValidationError(message)
    return FetchError(message)


def _server_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return None
