"""Tests for retry decisions."""

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import MagicMock

import httpx
import pytest

from conduit.app.core.config import settings
from conduit.app.schemas import RetrySettings
from conduit.app.services.retry_policy import RetryPolicy


def status_error(status_code: int, headers: dict | None = None) -> httpx.HTTPStatusError:
    response_mock = MagicMock()
    response_mock.status_code = status_code
    response_mock.headers = httpx.Headers(headers or {})
    return httpx.HTTPStatusError("Upstream error", request=MagicMock(), response=response_mock)


class TestRetryPolicyFromSettings:
    """Test building policies from RetrySettings."""

    def test_none_means_no_retries(self):
        """Test that a target without retry settings is never retried."""
        policy = RetryPolicy.from_settings(None)

        assert policy.attempts == 0
        assert policy.should_retry(attempt=0, status_code=503) is False

    def test_default_status_codes(self):
        """Test that omitted onStatusCodes fall back to the configured defaults."""
        policy = RetryPolicy.from_settings(RetrySettings(attempts=2))

        assert policy.on_status_codes == tuple(settings.default_retry_status_codes)
        assert policy.use_retry_after_header is False

    def test_explicit_status_codes(self):
        policy = RetryPolicy.from_settings(RetrySettings(attempts=2, on_status_codes=[429]))

        assert policy.on_status_codes == (429,)
        assert policy.is_retryable_status(429)
        assert not policy.is_retryable_status(503)

    def test_attempts_capped(self):
        """Test that attempts above the global maximum are capped."""
        policy = RetryPolicy.from_settings(RetrySettings(attempts=settings.max_retry_attempts + 10))

        assert policy.attempts == settings.max_retry_attempts


class TestShouldRetry:
    """Test per-attempt retry decisions."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        return RetryPolicy(attempts=2, on_status_codes=(429, 503), use_retry_after_header=True, max_retry_after=10.0)

    def test_retries_until_attempts_exhausted(self, policy):
        assert policy.should_retry(attempt=0, status_code=429)
        assert policy.should_retry(attempt=1, status_code=429)
        assert not policy.should_retry(attempt=2, status_code=429)

    def test_non_retryable_status(self, policy):
        assert not policy.should_retry(attempt=0, status_code=400)

    def test_transport_failure_retried(self, policy):
        assert policy.should_retry(attempt=0, status_code=None)

    def test_short_wait_hint_allowed(self, policy):
        assert policy.should_retry(attempt=0, status_code=429, headers=httpx.Headers({"Retry-After": "2"}))

    def test_long_wait_hint_stops_retry(self, policy):
        """Test that a wait hint above the cap is not worth retrying."""
        headers = httpx.Headers({"Retry-After": "120"})

        assert not policy.should_retry(attempt=0, status_code=429, headers=headers)

    def test_hint_ignored_when_disabled(self):
        policy = RetryPolicy(attempts=1, on_status_codes=(429,), max_retry_after=10.0)

        assert policy.should_retry(attempt=0, status_code=429, headers={"retry-after": "120"})


class TestRetryAfterSeconds:
    """Test wait hint parsing."""

    @pytest.fixture
    def policy(self) -> RetryPolicy:
        return RetryPolicy(attempts=1, use_retry_after_header=True)

    def test_disabled_returns_none(self):
        assert RetryPolicy(attempts=1).retry_after_seconds({"retry-after": "5"}) is None

    def test_seconds(self, policy):
        assert policy.retry_after_seconds({"retry-after": "5"}) == 5.0

    def test_milliseconds_take_precedence(self, policy):
        headers = httpx.Headers({"retry-after-ms": "1500", "retry-after": "9"})

        assert policy.retry_after_seconds(headers) == 1.5

    def test_azure_milliseconds(self, policy):
        assert policy.retry_after_seconds({"x-ms-retry-after-ms": "250"}) == 0.25

    def test_http_date(self, policy):
        when = datetime.now(timezone.utc) + timedelta(seconds=30)

        seconds = policy.retry_after_seconds({"retry-after": format_datetime(when, usegmt=True)})

        assert 25 <= seconds <= 31

    def test_unparseable_value(self, policy):
        assert policy.retry_after_seconds({"retry-after": "soon"}) is None

    def test_absent_header(self, policy):
        assert policy.retry_after_seconds({}) is None


class TestIsRetryable:
    """Test exception classification."""

    def test_network_error_retryable(self):
        """Test that transport failures are retryable."""
        policy = RetryPolicy(attempts=1)

        assert policy.is_retryable(httpx.ConnectError("Connection refused")) is True
        assert policy.is_retryable(httpx.ReadTimeout("Timed out")) is True

    def test_other_exception_not_retryable(self):
        assert RetryPolicy(attempts=1).is_retryable(ValueError("bad")) is False

    def test_http_status_error_uses_codes(self):
        """Test HTTP errors are retryable only for configured codes."""
        policy = RetryPolicy(attempts=1, on_status_codes=(503,))

        assert policy.is_retryable(status_error(503)) is True
        assert policy.is_retryable(status_error(400)) is False

    def test_should_retry_exception_reads_response_headers(self):
        policy = RetryPolicy(
            attempts=1, on_status_codes=(429,), use_retry_after_header=True, max_retry_after=5.0
        )

        assert policy.should_retry_exception(0, status_error(429, {"Retry-After": "1"}))
        assert not policy.should_retry_exception(0, status_error(429, {"Retry-After": "60"}))
        assert not policy.should_retry_exception(1, status_error(429))
