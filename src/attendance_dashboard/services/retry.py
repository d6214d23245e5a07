"""Bounded retry with a fixed delay for async fetches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from attendance_dashboard.domain.errors import TRANSIENT_ERRORS

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Succeed(Generic[T]):
    """Deliver ``value`` as the terminal outcome."""

    value: T


@dataclass(frozen=True)
class Retry:
    """Try again after the delay, or fail with ``error`` once attempts run out."""

    error: Exception


@dataclass(frozen=True)
class Fail:
    """Stop immediately with ``error``."""

    error: Exception


Decision = Succeed | Retry | Fail
Classifier = Callable[[object], Decision]


def classify_fetch(outcome: object) -> Decision:
    """Retry network and 5xx failures, fail on anything else that was raised."""
    if isinstance(outcome, TRANSIENT_ERRORS):
        return Retry(outcome)
    if isinstance(outcome, Exception):
        return Fail(outcome)
    return Succeed(outcome)


@dataclass
class RetryPolicy:
    """Run an idempotent operation until it succeeds or attempts run out.

    ``classify`` receives either the operation's return value or the exception
    it raised, and decides whether that attempt is terminal.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        classify: Classifier = classify_fetch,
        *,
        action: str = "operation",
    ) -> T:
        """Return the first successful value or raise the terminal error."""
        attempt = 0
        while True:
            try:
                outcome: object = await operation()
            except Exception as exc:
                outcome = exc
            decision = classify(outcome)
            if isinstance(decision, Succeed):
                return decision.value
            if isinstance(decision, Fail):
                _logger.info("%s failed permanently: %s", action, decision.error)
                raise decision.error
            attempt += 1
            _logger.warning(
                "%s failed (attempt %s/%s): %s",
                action,
                attempt,
                self.max_attempts,
                decision.error,
            )
            if attempt >= self.max_attempts:
                raise decision.error
            await self.sleep(self.delay_seconds)
