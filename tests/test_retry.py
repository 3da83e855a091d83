"""
Tests for core/retry.py
========================

Tests for retry utilities with exponential backoff.
"""

from unittest.mock import AsyncMock, patch

import pytest

from git_providers.core.exceptions import (
    ForbiddenError,
    InvalidRequestError,
    RateLimitedError,
    TransientError,
)
from git_providers.core.retry import (
    API_RETRY_CONFIG,
    RetryConfig,
    call_with_retry,
    should_retry,
)


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 30.0
        assert config.jitter_factor == 0.25

    def test_api_config(self):
        assert API_RETRY_CONFIG.max_attempts == 3
        assert API_RETRY_CONFIG.max_delay == 30.0

    def test_exponential_backoff_delay(self):
        """Test exponential backoff without jitter."""
        config = RetryConfig(initial_delay=1.0, backoff_multiplier=2.0, jitter=False)
        assert config.calculate_delay(0) == 1.0
        assert config.calculate_delay(1) == 2.0
        assert config.calculate_delay(2) == 4.0
        assert config.calculate_delay(3) == 8.0

    def test_max_delay_cap(self):
        """Test that delay is capped at max_delay."""
        config = RetryConfig(initial_delay=10.0, max_delay=15.0, jitter=False)
        assert config.calculate_delay(5) == 15.0

    def test_jitter_stays_in_range(self):
        config = RetryConfig(initial_delay=4.0, jitter=True, jitter_factor=0.25)
        for _ in range(50):
            assert 3.0 <= config.calculate_delay(0) <= 5.0

    def test_jitter_adds_randomness(self):
        """Test that jitter adds randomness to delay."""
        config = RetryConfig(initial_delay=1.0, jitter=True)
        delays = [config.calculate_delay(0) for _ in range(20)]
        assert len(set(delays)) > 1

    def test_retry_after_lengthens_delay(self):
        config = RetryConfig(initial_delay=1.0, jitter=False)
        assert config.calculate_delay(0, retry_after=7.0) == 7.0

    def test_retry_after_is_capped(self):
        config = RetryConfig(initial_delay=1.0, max_delay=30.0, jitter=False)
        assert config.calculate_delay(0, retry_after=3600.0) == 30.0

    def test_shorter_retry_after_ignored(self):
        config = RetryConfig(initial_delay=4.0, jitter=False)
        assert config.calculate_delay(0, retry_after=1.0) == 4.0


class TestShouldRetry:
    """Tests for should_retry function."""

    def test_max_attempts_exceeded(self):
        config = RetryConfig(max_attempts=3)
        assert should_retry(TransientError("502"), config, 3) is False

    def test_retryable_error(self):
        config = RetryConfig(max_attempts=3)
        assert should_retry(TransientError("502"), config, 1) is True
        assert should_retry(RateLimitedError(), config, 2) is True

    def test_non_retryable_error(self):
        config = RetryConfig(max_attempts=3)
        assert should_retry(ForbiddenError("denied"), config, 1) is False
        assert should_retry(ValueError("bug"), config, 1) is False


@pytest.fixture
def no_sleep():
    with patch("git_providers.core.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class TestCallWithRetry:
    """Tests for the async retry loop."""

    @pytest.mark.asyncio
    async def test_success_on_first_try(self, no_sleep):
        func = AsyncMock(return_value="ok")
        assert await call_with_retry(func, RetryConfig()) == "ok"
        assert func.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_on_third_attempt(self, no_sleep):
        """Two transient failures then success: 3 attempts, growing delays."""
        func = AsyncMock(
            side_effect=[TransientError("502"), TransientError("503"), "ok"]
        )
        result = await call_with_retry(func, RetryConfig(jitter=False))

        assert result == "ok"
        assert func.await_count == 3
        delays = [call.args[0] for call in no_sleep.await_args_list]
        assert delays == [1.0, 2.0]
        assert delays[0] < delays[1]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self, no_sleep):
        func = AsyncMock(side_effect=TransientError("502"))
        with pytest.raises(TransientError):
            await call_with_retry(func, RetryConfig(max_attempts=3, jitter=False))
        assert func.await_count == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion_keeps_hint(self, no_sleep):
        """The final RateLimitedError carries the last retry-after seen."""
        func = AsyncMock(
            side_effect=[
                RateLimitedError(retry_after=5.0),
                RateLimitedError(retry_after=9.0),
                RateLimitedError(),
            ]
        )
        with pytest.raises(RateLimitedError) as exc_info:
            await call_with_retry(func, RetryConfig(jitter=False))

        assert exc_info.value.retry_after == 9.0
        delays = [call.args[0] for call in no_sleep.await_args_list]
        assert delays == [5.0, 9.0]

    @pytest.mark.asyncio
    async def test_non_retryable_not_retried(self, no_sleep):
        func = AsyncMock(side_effect=InvalidRequestError("bad"))
        with pytest.raises(InvalidRequestError):
            await call_with_retry(func, RetryConfig())
        assert func.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_attempt_budget(self, no_sleep):
        func = AsyncMock(side_effect=TransientError("502"))
        with pytest.raises(TransientError):
            await call_with_retry(func, RetryConfig(max_attempts=1))
        assert func.await_count == 1
