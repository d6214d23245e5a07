"""Models for session-related server responses."""

from pydantic import BaseModel, ConfigDict, Field

from attendance_dashboard.domain.sessions import RosterEntry


class CreatedSession(BaseModel):
    """Response of the generate-QR call."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    qr_code: str = Field(alias="qrCode")


class RosterStudent(BaseModel):
    """Single student who scanned a session's QR code."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: str = ""
    email: str = ""


class SessionRoster(BaseModel):
    """Response of the session-detail call."""

    status: str = "active"
    students: list[RosterStudent] | None = None

    @property
    def is_expired(self) -> bool:
        return self.status == "expired"

    def entries(self) -> list[RosterEntry]:
        return [
            RosterEntry(student_id=student.id, name=student.name, email=student.email)
            for student in self.students or []
        ]
