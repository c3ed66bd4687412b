"""Retry governor for rate-limited directory calls.

Identity Center and Identity Store share a low account-wide request rate, so
every remote call goes through :class:`RetryGovernor`. Only throttling errors
are retried; they are retried with exponential backoff plus random jitter to
avoid synchronised retries from concurrent work units.

Classes:
    RetryEvent: Structured description of a single retry
    ExponentialBackoff: Delay calculation
    RetryGovernor: Executes operations with bounded retries
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .errors import DirectoryError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_JITTER_MAX_MS = 1000


@dataclass(frozen=True)
class RetryEvent:
    """Emitted each time a throttled operation is about to be retried."""

    label: str
    attempt: int
    max_retries: int
    delay_seconds: float
    error_code: str

    @property
    def message(self) -> str:
        return (
            f"Rate limit: {self.label}. Retry in {self.delay_seconds:.1f}s "
            f"({self.attempt}/{self.max_retries})"
        )


RetryObserver = Callable[[RetryEvent], None]


def log_retry_event(event: RetryEvent, level: int = logging.WARNING) -> None:
    """Default observer: log the retry, at WARNING level unless told otherwise."""
    logger.log(
        level,
        event.message,
        extra={
            "operation": event.label,
            "attempt": event.attempt,
            "delay_seconds": round(event.delay_seconds, 3),
            "error_code": event.error_code,
        },
    )


class ExponentialBackoff:
    """Exponential backoff with additive uniform jitter."""

    def __init__(
        self,
        initial_delay: float = DEFAULT_INITIAL_DELAY_MS / 1000,
        jitter_max: float = DEFAULT_JITTER_MAX_MS / 1000,
        random_func: Callable[[float, float], float] = random.uniform,
    ):
        """Initialize the backoff.

        Args:
            initial_delay: Delay in seconds before the first retry, before jitter
            jitter_max: Upper bound in seconds of the random jitter added to each delay
            random_func: Source of jitter, called as ``random_func(0, jitter_max)``
        """
        if initial_delay < 0 or jitter_max < 0:
            raise ValueError("Backoff delays must not be negative")
        self.initial_delay = initial_delay
        self.jitter_max = jitter_max
        self.random_func = random_func

    def base_delay(self, attempt: int) -> float:
        """Delay for a 0-indexed attempt, without jitter."""
        return self.initial_delay * (2**attempt)

    def calculate_delay(self, attempt: int) -> float:
        """Delay for a 0-indexed attempt, including jitter."""
        jitter = self.random_func(0, self.jitter_max) if self.jitter_max > 0 else 0.0
        return self.base_delay(attempt) + jitter


class RetryGovernor:
    """Runs directory operations with bounded retries on throttling."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: Optional[ExponentialBackoff] = None,
        observer: Optional[RetryObserver] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the retry governor.

        Args:
            max_retries: Number of retries after the first attempt
            backoff: Delay calculation, defaults to 1s base and 1s jitter
            observer: Receives a RetryEvent before each backoff sleep.
                Defaults to logging the event.
            sleep: Coroutine used to wait between attempts
        """
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.max_retries = max_retries
        self.backoff = backoff or ExponentialBackoff()
        self._observers: List[RetryObserver] = [observer or log_retry_event]
        self._sleep = sleep

        self.calls = 0
        self.retries = 0
        self.exhausted = 0

    def add_observer(self, observer: RetryObserver) -> None:
        self._observers.append(observer)

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        """Run ``operation`` until it succeeds, fails permanently or runs out of retries.

        Args:
            operation: Zero-argument callable returning an awaitable for one remote call
            label: Human readable name of the operation, used in events and errors

        Returns:
            The operation's result

        Raises:
            DirectoryError: Immediately, for any error that is not throttling
            RetryExhaustedError: When every attempt was throttled
        """
        for attempt in range(self.max_retries + 1):
            self.calls += 1
            try:
                return await operation()
            except DirectoryError as e:
                if not e.is_throttled:
                    raise
                if attempt == self.max_retries:
                    self.exhausted += 1
                    raise RetryExhaustedError(label, self.max_retries, e) from e

                delay = self.backoff.calculate_delay(attempt)
                self.retries += 1
                self._notify(
                    RetryEvent(
                        label=label,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay_seconds=delay,
                        error_code=e.code,
                    )
                )
                await self._sleep(delay)

        # range() above always returns or raises
        raise AssertionError("unreachable")

    def _notify(self, event: RetryEvent) -> None:
        for observer in self._observers:
            observer(event)

    def get_stats(self) -> dict:
        return {"remote_calls": self.calls, "retries": self.retries, "exhausted": self.exhausted}
