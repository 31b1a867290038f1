"""Tests for retry with backoff."""

from unittest.mock import Mock

import pytest

from wakalogger.sync.retry import RetryConfig, RetryExhausted, backoff_delay, retry_with_backoff


class TestBackoffDelay:
    """Tests for backoff_delay."""

    def test_grows_exponentially(self):
        config = RetryConfig(base_delay=1.0, exponential_base=2.0, max_delay=60.0, jitter=False)

        assert [backoff_delay(n, config) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)

        assert backoff_delay(10, config) == 5.0

    def test_jitter_stays_within_quarter(self):
        config = RetryConfig(base_delay=4.0, jitter=True)

        for _ in range(50):
            assert 3.0 <= backoff_delay(0, config) <= 5.0


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    def setup_method(self):
        self.sleep = Mock()
        self.config = RetryConfig(max_retries=2, base_delay=1.0, jitter=False)

    def test_returns_first_success(self):
        func = Mock(side_effect=[ValueError("a"), "ok"])

        assert retry_with_backoff(func, self.config, (ValueError,), sleep=self.sleep) == "ok"
        assert func.call_count == 2
        self.sleep.assert_called_once_with(1.0)

    def test_exhausted(self):
        func = Mock(side_effect=ValueError("nope"))

        with pytest.raises(RetryExhausted) as exc_info:
            retry_with_backoff(func, self.config, (ValueError,), sleep=self.sleep)

        assert exc_info.value.attempts == 3
        assert str(exc_info.value.last_error) == "nope"
        assert func.call_count == 3

    def test_non_retryable_propagates(self):
        func = Mock(side_effect=KeyError("x"))

        with pytest.raises(KeyError):
            retry_with_backoff(func, self.config, (ValueError,), sleep=self.sleep)

        self.sleep.assert_not_called()
