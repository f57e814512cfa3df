"""
Tests for retry logic.
"""

import smtplib

import pytest
from gradjobs import retry
from gradjobs.retry import RetryError, exponential_backoff


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff sleeps instead of waiting."""
    recorded = []
    monkeypatch.setattr(retry.time, "sleep", recorded.append)
    return recorded


class TestExponentialBackoff:
    """Test exponential backoff decorator."""

    def test_success_on_first_try(self, sleeps):
        """Function that succeeds immediately should not retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.1)
        def succeeds():
            call_count[0] += 1
            return "sent"

        assert succeeds() == "sent"
        assert call_count[0] == 1
        assert sleeps == []

    def test_retry_then_succeed(self, sleeps):
        """Function that fails then succeeds should retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.5, exceptions=(smtplib.SMTPException,))
        def flaky_delivery():
            call_count[0] += 1
            if call_count[0] < 3:
                raise smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
            return "sent"

        assert flaky_delivery() == "sent"
        assert call_count[0] == 3
        assert sleeps == [0.5, 1.0]

    def test_all_retries_exhausted(self, sleeps):
        """Should raise RetryError chained to the last failure."""
        call_count = [0]

        @exponential_backoff(max_retries=2, base_delay=0.01)
        def always_fails():
            call_count[0] += 1
            raise ConnectionRefusedError("refused")

        with pytest.raises(RetryError) as exc:
            always_fails()

        assert call_count[0] == 3  # Initial + 2 retries
        assert isinstance(exc.value.__cause__, ConnectionRefusedError)
        assert "3 attempts" in str(exc.value)

    def test_only_catches_specified_exceptions(self, sleeps):
        """Should only retry on specified exception types."""
        call_count = [0]

        @exponential_backoff(max_retries=3, exceptions=(smtplib.SMTPException,))
        def bad_credentials():
            call_count[0] += 1
            raise ValueError("Not retryable")

        with pytest.raises(ValueError):
            bad_credentials()

        assert call_count[0] == 1

    def test_no_retries(self, sleeps):
        @exponential_backoff(max_retries=0)
        def always_fails():
            raise OSError("down")

        with pytest.raises(RetryError):
            always_fails()
        assert sleeps == []

    def test_on_retry_and_max_delay(self, sleeps):
        """Callback sees each attempt; delay should not exceed max_delay."""
        seen = []

        @exponential_backoff(
            max_retries=4,
            base_delay=1.0,
            max_delay=2.0,
            exponential_base=3.0,
            on_retry=lambda attempt, error, delay: seen.append((attempt, delay)),
        )
        def always_fails():
            raise OSError("down")

        with pytest.raises(RetryError):
            always_fails()

        assert seen == [(1, 1.0), (2, 2.0), (3, 2.0), (4, 2.0)]
        assert sleeps == [1.0, 2.0, 2.0, 2.0]
