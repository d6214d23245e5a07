"""Error taxonomy surfaced by the dashboard core."""


class AttendanceError(Exception):
    """Base error carrying a user-facing message and a machine-readable kind."""

    kind = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AttendanceError):
    """Required input was missing or rejected."""

    kind = "validation"
    default_message = "Please fill in all fields"


class NotFoundError(AttendanceError):
    """The requested resource does not exist (anymore)."""

    kind = "not_found"
    default_message = "Session not found. It may have been deleted."


class ForbiddenError(AttendanceError):
    """The caller has no access to the requested resource."""

    kind = "forbidden"
    default_message = "You do not have access to this session."


class FetchError(AttendanceError):
    """A server call failed in a way that is not otherwise classified."""

    kind = "fetch"
    default_message = "Failed to fetch data"


class TransientServerError(FetchError):
    """The server failed with a 5xx response."""

    kind = "server_error"
    default_message = "Server error when fetching session. Please try again later."


class NetworkError(FetchError):
    """The request never got a response."""

    kind = "network"
    default_message = "Network error"


class EmptyResultError(AttendanceError):
    """An export produced a zero-byte artifact."""

    kind = "empty_result"
    default_message = "Received empty Excel file"


class InvalidTransitionError(AttendanceError):
    """A session was asked to move to a state it cannot reach."""

    kind = "invalid_transition"
    default_message = "Invalid session transition"


TRANSIENT_ERRORS: tuple[type[AttendanceError], ...] = (
    NetworkError,
    TransientServerError,
)
