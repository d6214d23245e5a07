"""Domain models for per-subject attendance reports."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


@dataclass(frozen=True)
class StudentAttendance:
    """Aggregate attendance of one student within a subject."""

    name: str
    email: str
    attendance_count: int
    attendance_percentage: float | None = None

    def percentage(self, total_sessions: int) -> float:
        """Return the server percentage, or derive it from the session count.

        A subject without any sessions yields ``0.0``.
        """
        if self.attendance_percentage is not None:
            return self.attendance_percentage
        if total_sessions <= 0:
            return 0.0
        return self.attendance_count / total_sessions * 100


@dataclass(frozen=True)
class ReportSnapshot:
    """Attendance statistics for a subject as of the last successful poll."""

    subject: str
    total_sessions: int
    students: dict[str, StudentAttendance] = field(default_factory=dict)

    @property
    def student_count(self) -> int:
        return len(self.students)

    def rows(self) -> list[dict[str, object]]:
        """Return the report-detail table rows."""
        return [
            {
                "student_id": student_id,
                "name": student.name,
                "email": student.email,
                "attendance": f"{student.attendance_count} / {self.total_sessions}",
                "percentage": f"{student.percentage(self.total_sessions):.1f}%",
            }
            for student_id, student in self.students.items()
        ]


class StudentAttendancePayload(BaseModel):
    """Student entry as returned by the report endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    email: str = ""
    attendance_count: int = Field(default=0, ge=0, alias="attendanceCount")
    attendance_percentage: float | None = Field(
        default=None, alias="attendancePercentage"
    )


class ReportPayload(BaseModel):
    """Per-subject report as returned by the report endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    total_sessions: int = Field(default=0, ge=0, alias="totalSessions")
    students: dict[str, StudentAttendancePayload] = Field(default_factory=dict)


_REPORT_SET = TypeAdapter(dict[str, ReportPayload])


def parse_report_set(raw: object) -> dict[str, ReportSnapshot]:
    """Validate a raw report payload and convert it to snapshots."""
    payload = _REPORT_SET.validate_python(raw)
    return {
        subject: ReportSnapshot(
            subject=subject,
            total_sessions=report.total_sessions,
            students={
                student_id: StudentAttendance(
                    name=student.name,
                    email=student.email,
                    attendance_count=student.attendance_count,
                    attendance_percentage=student.attendance_percentage,
                )
                for student_id, student in report.students.items()
            },
        )
        for subject, report in payload.items()
    }
