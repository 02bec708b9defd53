"""Unit tests for the retry policy and circuit breaker."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from common.exceptions import (
    BackendHTTPError,
    BackendResponseError,
    BackendTransportError,
    CaptchaRequiredError,
    CircuitBreakerOpenError,
)
from common.retry_utils import (
    CircuitBreaker,
    RetryPolicy,
    calculate_exponential_backoff_delay,
    is_transient_error,
)


def make_policy(threshold=100, max_retries=3):
    """Retry policy with a tiny delay so tests don't wait."""
    return RetryPolicy(
        CircuitBreaker(threshold=threshold),
        max_retries=max_retries,
        initial_delay=0.001,
        exponential_base=2,
        max_delay=0.01,
    )


class TestCalculateExponentialBackoffDelay:
    """Test cases for exponential backoff delay calculation."""

    @pytest.mark.parametrize(
        "attempt,expected_base",
        [(0, 2.0), (1, 4.0), (2, 8.0), (3, 16.0)],
    )
    def test_delay_stays_within_jitter_range(self, attempt, expected_base):
        """Should apply jitter between 50% and 100% of the exponential delay."""
        delay = calculate_exponential_backoff_delay(2.0, attempt, 2, 60.0)

        assert expected_base * 0.5 <= delay <= expected_base

    def test_respects_max_delay_cap(self):
        """Should cap delay at maximum value before jitter."""
        delay = calculate_exponential_backoff_delay(2.0, 10, 2, 60.0)

        assert 30.0 <= delay <= 60.0

    def test_jitter_uses_random_factor(self):
        with patch("common.retry_utils.random.uniform", return_value=0.75) as mock_uniform:
            delay = calculate_exponential_backoff_delay(2.0, 1, 2, 60.0)

        mock_uniform.assert_called_once_with(0.5, 1.0)
        assert delay == pytest.approx(3.0)


class TestIsTransientError:
    """Test cases for failure classification."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504, 429])
    def test_server_errors_and_rate_limits_are_transient(self, status):
        assert is_transient_error(BackendHTTPError(status)) is True

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors_are_permanent(self, status):
        assert is_transient_error(BackendHTTPError(status)) is False

    @pytest.mark.parametrize("status", [400, 404, 413])
    def test_other_statuses_are_permanent(self, status):
        assert is_transient_error(BackendHTTPError(status)) is False

    def test_captcha_is_permanent(self):
        assert is_transient_error(CaptchaRequiredError("https://example.com")) is False

    def test_circuit_breaker_is_permanent(self):
        assert is_transient_error(CircuitBreakerOpenError(100)) is False

    @pytest.mark.parametrize(
        "error",
        [
            BackendTransportError("connection reset"),
            BackendResponseError("garbled body"),
            httpx.ConnectError("refused"),
            ConnectionError("Connection failed"),
            TimeoutError("Request timed out"),
        ],
    )
    def test_errors_without_status_are_transient(self, error):
        assert is_transient_error(error) is True

    def test_unknown_errors_are_permanent(self):
        assert is_transient_error(TypeError("bug")) is False


class TestCircuitBreaker:
    """Test the run-wide failure streak counter."""

    def test_opens_at_threshold(self):
        breaker = CircuitBreaker(threshold=3)

        breaker.record_failure()
        breaker.record_failure()
        with pytest.raises(CircuitBreakerOpenError):
            breaker.record_failure()

        assert breaker.is_open

    def test_success_resets_streak(self):
        breaker = CircuitBreaker(threshold=3)

        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.consecutive_failures == 1
        assert not breaker.is_open

    def test_ensure_closed_raises_when_open(self):
        breaker = CircuitBreaker(threshold=1)
        with pytest.raises(CircuitBreakerOpenError):
            breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            breaker.ensure_closed()

    def test_late_success_does_not_close_tripped_breaker(self):
        breaker = CircuitBreaker(threshold=2)
        breaker.record_failure()
        with pytest.raises(CircuitBreakerOpenError):
            breaker.record_failure()

        breaker.record_success()

        assert breaker.is_open
        assert breaker.consecutive_failures == 2
        with pytest.raises(CircuitBreakerOpenError):
            breaker.ensure_closed()

    def test_default_threshold_from_settings(self):
        assert CircuitBreaker().threshold == 100


class TestRetryPolicy:
    """Test cases for the retry loop."""

    @pytest.mark.asyncio
    async def test_succeeds_on_first_attempt(self):
        """Should return result on first successful attempt."""
        attempt = AsyncMock(return_value="success")

        result = await make_policy().run(attempt)

        assert result == "success"
        assert attempt.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_on_transient_error(self):
        """Should retry on transient errors."""
        attempt = AsyncMock(
            side_effect=[BackendHTTPError(503), BackendTransportError("reset"), "success"]
        )

        result = await make_policy().run(attempt)

        assert result == "success"
        assert attempt.call_count == 3

    @pytest.mark.asyncio
    async def test_fails_after_max_retries(self):
        """Should call count+1 times and raise the last error."""
        errors = [BackendHTTPError(500), BackendHTTPError(502), BackendHTTPError(503), BackendHTTPError(504)]
        attempt = AsyncMock(side_effect=errors)

        with pytest.raises(BackendHTTPError) as exc_info:
            await make_policy(max_retries=3).run(attempt)

        assert exc_info.value is errors[-1]
        assert attempt.call_count == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [CaptchaRequiredError("https://example.com/sorry"), BackendHTTPError(401), BackendHTTPError(403)],
    )
    async def test_does_not_retry_on_permanent_error(self, error):
        """Should call a permanently failing attempt exactly once."""
        attempt = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await make_policy().run(attempt)

        assert attempt.call_count == 1

    @pytest.mark.asyncio
    async def test_success_resets_shared_breaker(self):
        policy = make_policy(threshold=10)
        attempt = AsyncMock(side_effect=[BackendHTTPError(503), BackendHTTPError(503), "ok"])

        await policy.run(attempt)

        assert policy.circuit_breaker.consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_breaker_trips_before_retry_budget_is_spent(self):
        """Should halt as soon as the streak hits the threshold."""
        attempt = AsyncMock(side_effect=BackendHTTPError(503))

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            await make_policy(threshold=2, max_retries=5).run(attempt)

        assert attempt.call_count == 2
        assert isinstance(exc_info.value.__cause__, BackendHTTPError)

    @pytest.mark.asyncio
    async def test_open_breaker_refuses_attempts(self):
        """After the threshold, further attempts fail without calling out."""
        breaker = CircuitBreaker(threshold=3)
        policies = [
            RetryPolicy(breaker, max_retries=0, initial_delay=0.001) for _ in range(3)
        ]
        failing = AsyncMock(side_effect=BackendHTTPError(401))

        for policy in policies[:2]:
            with pytest.raises(BackendHTTPError):
                await policy.run(failing)
        with pytest.raises(CircuitBreakerOpenError):
            await policies[2].run(failing)

        untouched = AsyncMock(return_value="never")
        with pytest.raises(CircuitBreakerOpenError):
            await RetryPolicy(breaker).run(untouched)

        assert failing.call_count == 3
        untouched.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_is_refused_once_breaker_tripped_during_backoff(self):
        """A line backing off must not call out again after another line trips the breaker."""
        breaker = CircuitBreaker(threshold=2)
        policy = RetryPolicy(breaker, max_retries=3, initial_delay=0.001)
        attempt = AsyncMock(side_effect=[BackendHTTPError(503), "ok"])

        async def other_lines_fail_then_one_succeeds(delay):
            try:
                breaker.record_failure()
            except CircuitBreakerOpenError:
                pass
            breaker.record_success()

        with patch(
            "common.retry_utils.asyncio.sleep",
            new_callable=AsyncMock,
            side_effect=other_lines_fail_then_one_succeeds,
        ):
            with pytest.raises(CircuitBreakerOpenError):
                await policy.run(attempt)

        assert attempt.call_count == 1

    @pytest.mark.asyncio
    async def test_waits_with_backoff_between_attempts(self):
        attempt = AsyncMock(side_effect=[BackendHTTPError(429), "ok"])
        policy = RetryPolicy(
            CircuitBreaker(threshold=10),
            max_retries=3,
            initial_delay=2.0,
            exponential_base=2,
            max_delay=60.0,
        )

        with patch("common.retry_utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await policy.run(attempt)

        assert result == "ok"
        mock_sleep.assert_awaited_once()
        delay = mock_sleep.await_args.args[0]
        assert 1.0 <= delay <= 2.0

    @pytest.mark.asyncio
    async def test_logs_retry_attempts(self):
        attempt = AsyncMock(side_effect=[BackendHTTPError(500), "ok"])

        with patch("common.retry_utils.logger") as mock_logger:
            await make_policy().run(attempt)

        mock_logger.warning.assert_called_once()
        assert "Retry 1/3" in mock_logger.warning.call_args.args[0]
