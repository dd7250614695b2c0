"""Retry decisions for upstream provider calls.

This module turns a target's ``RetrySettings`` into a policy that answers
whether a failed attempt should be retried and how long the provider asked
the caller to wait. Scheduling the wait is left to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional, Tuple, Type

import httpx

from conduit.app.core.config import settings
from conduit.app.core.logging import get_logger
from conduit.app.schemas.policy import RetrySettings

logger = get_logger(__name__)

# Provider wait hints in order of precedence; the *-ms headers are milliseconds
RETRY_AFTER_HEADERS: Tuple[Tuple[str, float], ...] = (
    ("retry-after-ms", 1000.0),
    ("x-ms-retry-after-ms", 1000.0),
    ("retry-after", 1.0),
)


def _default_status_codes() -> Tuple[int, ...]:
    return tuple(settings.default_retry_status_codes)


@dataclass
class RetryPolicy:
    """Effective retry behaviour for one target.

    Attributes:
        attempts: Number of retries after the first call (capped at
            ``settings.max_retry_attempts``)
        on_status_codes: Upstream status codes that trigger a retry
        use_retry_after_header: Honour provider wait hints
        max_retry_after: Longest wait hint, in seconds, worth honouring
        retryable_exceptions: Transport errors that are always retryable

    Example:
        >>> policy = RetryPolicy.from_settings(RetrySettings(attempts=2, on_status_codes=[429]))
        >>> policy.should_retry(attempt=0, status_code=429)
        True
    """

    attempts: int = 0
    on_status_codes: Tuple[int, ...] = field(default_factory=_default_status_codes)
    use_retry_after_header: bool = False
    max_retry_after: float = field(default_factory=lambda: settings.max_retry_after_seconds)
    retryable_exceptions: Tuple[Type[Exception], ...] = (
        httpx.NetworkError,
        httpx.TimeoutException,
    )

    @classmethod
    def from_settings(cls, retry: Optional[RetrySettings]) -> "RetryPolicy":
        """Build a policy from settings; None means no retries."""
        if retry is None:
            return cls()

        attempts = max(0, retry.attempts)
        if attempts > settings.max_retry_attempts:
            logger.warning(
                f"Retry attempts {attempts} capped to {settings.max_retry_attempts}"
            )
            attempts = settings.max_retry_attempts

        codes = retry.on_status_codes
        return cls(
            attempts=attempts,
            on_status_codes=tuple(codes) if codes is not None else _default_status_codes(),
            use_retry_after_header=bool(retry.use_retry_after_header),
        )

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.on_status_codes

    def is_retryable(self, exception: Exception) -> bool:
        """Check if an exception should trigger a retry.

        For HTTPStatusError, only the configured status codes are retryable.

        Args:
            exception: The exception to check

        Returns:
            True if the exception should trigger a retry
        """
        if isinstance(exception, httpx.HTTPStatusError):
            return self.is_retryable_status(exception.response.status_code)

        return isinstance(exception, self.retryable_exceptions)

    def retry_after_seconds(self, headers: Mapping[str, str]) -> Optional[float]:
        """Read the provider's wait hint from response headers.

        Args:
            headers: Response headers (case-insensitive mapping such as
                ``httpx.Headers`` or a plain dict with lowercase keys)

        Returns:
            Seconds to wait, or None when hints are disabled or absent
        """
        if not self.use_retry_after_header:
            return None

        for name, divisor in RETRY_AFTER_HEADERS:
            raw = headers.get(name)
            if raw is None:
                continue
            seconds = _parse_wait(raw.strip(), divisor)
            if seconds is not None:
                return seconds
        return None

    def should_retry(
        self,
        attempt: int,
        status_code: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """Decide whether the failed attempt should be retried.

        Args:
            attempt: Zero-based index of the attempt that just failed
            status_code: Upstream status code, None for transport failures
            headers: Upstream response headers

        Returns:
            True if another attempt should be made
        """
        if attempt >= self.attempts:
            return False
        if status_code is not None and not self.is_retryable_status(status_code):
            return False

        if headers is not None:
            wait = self.retry_after_seconds(headers)
            if wait is not None and wait > self.max_retry_after:
                logger.info(
                    f"Not retrying: provider asked to wait {wait:.1f}s "
                    f"(limit {self.max_retry_after:.1f}s)",
                    extra={"status_code": status_code},
                )
                return False
        return True

    def should_retry_exception(self, attempt: int, exception: Exception) -> bool:
        """Decide whether an attempt that raised ``exception`` should be retried."""
        if attempt >= self.attempts or not self.is_retryable(exception):
            return False
        if isinstance(exception, httpx.HTTPStatusError):
            return self.should_retry(
                attempt,
                exception.response.status_code,
                exception.response.headers,
            )
        return True


def _parse_wait(raw: str, divisor: float) -> Optional[float]:
    try:
        return max(0.0, float(raw) / divisor)
    except ValueError:
        pass

    # Retry-After may also be an HTTP date
    if divisor != 1.0:
        return None
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
