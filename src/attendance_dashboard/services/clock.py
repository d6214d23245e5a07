"""Countdown for the current session's QR validity window."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[str], Awaitable[None] | None]


@dataclass
class SessionClock:
    """Holds at most one pending expiry callback, tagged with a session id."""

    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _session_id: str | None = field(default=None, init=False)

    @property
    def armed_session_id(self) -> str | None:
        """Return the session the pending callback belongs to, if any."""
        if self._task is None or self._task.done():
            return None
        return self._session_id

    def arm(
        self, session_id: str, callback: ExpiryCallback, duration: float = 120.0
    ) -> None:
        """Schedule ``callback(session_id)`` after ``duration`` seconds."""
        self.disarm()
        self._session_id = session_id
        self._task = asyncio.get_running_loop().create_task(
            self._fire(session_id, callback, duration)
        )

    def disarm(self) -> None:
        """Cancel the pending callback, if any."""
        task, self._task = self._task, None
        self._session_id = None
        if task is not None and not task.done():
            task.cancel()

    async def _fire(
        self, session_id: str, callback: ExpiryCallback, duration: float
    ) -> None:
        await self.sleep(duration)
        if self._session_id == session_id:
            self._task = None
            self._session_id = None
        _logger.info("QR validity elapsed for session %s", session_id)
        result = callback(session_id)
        if result is not None:
            await result
