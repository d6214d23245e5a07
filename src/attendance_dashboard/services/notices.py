"""Transient, dismissable notices shown above the dashboard."""

import enum
import logging
from dataclasses import dataclass

from attendance_dashboard.domain.errors import AttendanceError

_logger = logging.getLogger(__name__)


class NoticeLevel(enum.Enum):
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class Notice:
    """A single user-facing message."""

    level: NoticeLevel
    message: str
    kind: str | None = None


@dataclass
class NoticeBoard:
    """Holds the latest error and the latest success message."""

    error: Notice | None = None
    success: Notice | None = None

    def post_error(self, message: str, kind: str | None = None) -> Notice:
        """Replace the current error notice."""
        notice = Notice(level=NoticeLevel.ERROR, message=message, kind=kind)
        self.error = notice
        _logger.info("Error notice (%s): %s", kind, message)
        return notice

    def post_exception(self, exc: Exception, fallback: str) -> Notice:
        """Post an error notice for a raised exception."""
        if isinstance(exc, AttendanceError):
            return self.post_error(exc.message, exc.kind)
        return self.post_error(str(exc) or fallback, "error")

    def post_success(self, message: str) -> Notice:
        """Replace the current success notice."""
        notice = Notice(level=NoticeLevel.SUCCESS, message=message)
        self.success = notice
        return notice

    def dismiss(self, level: NoticeLevel) -> None:
        """Dismiss the notice of the given level."""
        if level is NoticeLevel.ERROR:
            self.error = None
        else:
            self.success = None

    def clear_error(self) -> None:
        self.error = None

    def active(self) -> list[Notice]:
        return [notice for notice in (self.error, self.success) if notice is not None]
