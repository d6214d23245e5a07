"""Domain models for QR attendance sessions."""

import enum
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from attendance_dashboard.domain.errors import InvalidTransitionError

DEFAULT_SESSION_TTL_SECONDS = 120.0

class ViewOrder:
    """Monotonic counter ranking dialogs by when they were opened.

    One instance is shared by every service whose dialogs compete for the
    screen.
    """

    def __init__(self) -> None:
        self._sequence = itertools.count(1)

    def next(self) -> int:
        return next(self._sequence)


class SessionStatus(enum.Enum):
    """Lifecycle states of the current session."""

    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"
    CLEARED = "cleared"


_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.NONE: frozenset({SessionStatus.ACTIVE}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.EXPIRED, SessionStatus.CLEARED}),
    SessionStatus.EXPIRED: frozenset({SessionStatus.CLEARED}),
    SessionStatus.CLEARED: frozenset(),
}


def check_transition(current: SessionStatus, target: SessionStatus) -> None:
    """Raise if moving from ``current`` to ``target`` is not permitted."""
    if target not in _TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move session from {current.value} to {target.value}"
        )


@dataclass(frozen=True)
class RosterEntry:
    """A student who scanned the session's QR code."""

    student_id: str
    name: str
    email: str


@dataclass
class Session:
    """The single current QR session owned by the session store."""

    session_id: str
    subject: str
    classroom: str
    qr_payload: str
    created_at: datetime
    expires_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    roster: list[RosterEntry] = field(default_factory=list)
    roster_loading: bool = False
    roster_failed: bool = False
    server_expired: bool = False
    open_order: int = 0

    @classmethod
    def start(  # noqa: PLR0913
        cls,
        session_id: str,
        subject: str,
        classroom: str,
        qr_payload: str,
        created_at: datetime,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        open_order: int = 0,
    ) -> "Session":
        """Build a freshly created, active session."""
        return cls(
            session_id=session_id,
            subject=subject,
            classroom=classroom,
            qr_payload=qr_payload,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=ttl_seconds),
            open_order=open_order,
        )

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def is_expired(self) -> bool:
        return self.status is SessionStatus.EXPIRED

    def transition(self, target: SessionStatus) -> None:
        """Move to ``target`` if the transition table allows it."""
        check_transition(self.status, target)
        self.status = target
