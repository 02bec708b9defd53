"""Retry policy with exponential backoff and a run-wide circuit breaker."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from common.config import settings
from common.exceptions import (
    BackendHTTPError,
    BackendResponseError,
    BackendTransportError,
    CaptchaRequiredError,
    CircuitBreakerOpenError,
)

logger = logging.getLogger(__name__)

# Type variable for generic function return type
T = TypeVar("T")

# Status codes that retrying can never fix
PERMANENT_STATUS_CODES = {401, 403}
RATE_LIMIT_STATUS_CODE = 429


def calculate_exponential_backoff_delay(
    initial_delay: float,
    attempt: int,
    exponential_base: int,
    max_delay: float,
) -> float:
    """
    Calculate delay with exponential backoff and jitter.

    Args:
        initial_delay: Initial delay in seconds
        attempt: Current attempt number (0-indexed)
        exponential_base: Base for exponential calculation (e.g., 2)
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds, between 50% and 100% of the capped exponential delay
    """
    delay = min(initial_delay * (exponential_base**attempt), max_delay)

    # Jitter keeps concurrent lines from retrying in lockstep
    return delay * random.uniform(0.5, 1.0)


def is_transient_error(error: BaseException) -> bool:
    """
    Determine if an error is transient (should retry) or permanent (should not retry).

    Args:
        error: Exception to check

    Returns:
        True if error is transient and should be retried, False otherwise
    """
    # Retrying would only hit the same challenge again
    if isinstance(error, (CaptchaRequiredError, CircuitBreakerOpenError)):
        return False

    if isinstance(error, BackendHTTPError):
        status = error.status_code
        if status in PERMANENT_STATUS_CODES:
            return False
        return status >= 500 or status == RATE_LIMIT_STATUS_CODE

    # No status code at all: the request failed below HTTP or the body was garbled
    if isinstance(
        error,
        (
            BackendTransportError,
            BackendResponseError,
            httpx.TransportError,
            ConnectionError,
            TimeoutError,
            asyncio.TimeoutError,
        ),
    ):
        return True

    # Default: treat unknown errors as permanent to avoid pointless retries
    return False


class CircuitBreaker:
    """
    Counts consecutive failures across every line, language and backend.

    Any success resets the streak. Once the streak reaches the threshold the
    breaker latches open for the rest of the run and every further attempt is
    refused, including retries of requests that were already in flight.
    Counters are only touched between awaits, so concurrent coroutines never
    interleave an update.
    """

    def __init__(self, threshold: Optional[int] = None):
        self.threshold = threshold or settings.circuit_breaker_threshold
        self.consecutive_failures = 0
        self.tripped = False

    @property
    def is_open(self) -> bool:
        return self.tripped

    def ensure_closed(self) -> None:
        """
        Refuse to start an attempt while the breaker is open.

        Raises:
            CircuitBreakerOpenError: If the failure threshold has been reached
        """
        if self.is_open:
            raise CircuitBreakerOpenError(self.consecutive_failures)

    def record_success(self) -> None:
        # A late success never closes a tripped breaker
        if not self.tripped:
            self.consecutive_failures = 0

    def record_failure(self) -> None:
        """
        Count a failed attempt.

        Raises:
            CircuitBreakerOpenError: If this failure reaches the threshold
        """
        self.consecutive_failures += 1
        if self.tripped:
            raise CircuitBreakerOpenError(self.consecutive_failures)

        if self.consecutive_failures >= self.threshold:
            self.tripped = True
            logger.error(
                f"❌ Circuit breaker open after {self.consecutive_failures} "
                "consecutive failures, halting"
            )
            raise CircuitBreakerOpenError(self.consecutive_failures)


class RetryPolicy:
    """Wraps a single translation attempt with bounded retries."""

    def __init__(
        self,
        circuit_breaker: CircuitBreaker,
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        exponential_base: Optional[int] = None,
        max_delay: Optional[float] = None,
    ):
        """
        Initialize the retry policy.

        Unset arguments fall back to the retry_* settings.

        Args:
            circuit_breaker: Breaker shared by every policy of the run
            max_retries: Maximum number of retry attempts (after initial try)
            initial_delay: Initial delay in seconds before first retry
            exponential_base: Base for exponential backoff calculation
            max_delay: Maximum delay in seconds between retries
        """
        self.circuit_breaker = circuit_breaker
        self.max_retries = (
            settings.retry_max_retries if max_retries is None else max_retries
        )
        self.initial_delay = (
            settings.retry_initial_delay if initial_delay is None else initial_delay
        )
        self.exponential_base = exponential_base or settings.retry_exponential_base
        self.max_delay = settings.retry_max_delay if max_delay is None else max_delay

    async def run(self, attempt_fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run an attempt, retrying transient failures with exponential backoff.

        Args:
            attempt_fn: Zero-argument coroutine factory performing one attempt

        Returns:
            Result of the first successful attempt

        Raises:
            CircuitBreakerOpenError: If the run-wide failure streak hits the threshold
            Exception: The last failure, once it is permanent or retries are exhausted
        """
        for attempt in range(self.max_retries + 1):
            self.circuit_breaker.ensure_closed()

            try:
                result = await attempt_fn()
            except Exception as e:
                try:
                    self.circuit_breaker.record_failure()
                except CircuitBreakerOpenError as breaker_error:
                    raise breaker_error from e

                if not is_transient_error(e):
                    logger.debug(f"Permanent error: {e}. Not retrying.")
                    raise

                if attempt >= self.max_retries:
                    logger.debug(
                        f"Max retries ({self.max_retries}) exceeded. Last error: {e}"
                    )
                    raise

                delay = calculate_exponential_backoff_delay(
                    initial_delay=self.initial_delay,
                    attempt=attempt,
                    exponential_base=self.exponential_base,
                    max_delay=self.max_delay,
                )
                logger.warning(
                    f"⚠️  {e}. Retry {attempt + 1}/{self.max_retries} "
                    f"in {round(delay * 1000)}ms..."
                )
                await asyncio.sleep(delay)
            else:
                self.circuit_breaker.record_success()
                return result

        # Unreachable: the loop either returns or raises
        raise RuntimeError("Unexpected retry loop exit")
