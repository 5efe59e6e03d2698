"""Retry utilities for AWS storage operations."""

import time
from typing import Any, Callable, Optional, Tuple, Type

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import ReportError
from .logging import get_logger


class RetryExhaustedError(ReportError):
    """Raised when every attempt of a retried operation has failed."""

    def __init__(self, message: str, attempts: int, last_error: Exception, **context):
        super().__init__(message, **context)
        self.attempts = attempts
        self.last_error = last_error


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Total number of attempts, including the first one
            base_delay: Delay after the first failed attempt (seconds)
            max_delay: Maximum delay between retries (seconds)
            retryable_exceptions: Exception types that should trigger retries
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

        if retryable_exceptions is None:
            self.retryable_exceptions = (
                ClientError,
                BotoCoreError,
                ConnectionError,
                TimeoutError,
            )
        else:
            self.retryable_exceptions = retryable_exceptions


def _calculate_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential backoff delay for a retry attempt.

    Args:
        attempt: Attempt number (0-based)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    return min(base_delay * (2**attempt), max_delay)


class RetryPolicy:
    """Runs an operation closure with bounded retries and backoff.

    One policy instance is shared by every call that needs the same retry
    behaviour (both report uploads use the same policy).
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.logger = get_logger("aws_service_report.retry")

    def run(self, operation: Callable[[], Any], description: str = "operation") -> Any:
        """Execute ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument callable to execute
            description: Human-readable name used in log lines

        Returns:
            Whatever ``operation`` returns

        Raises:
            RetryExhaustedError: If every attempt raised a retryable error
            Exception: Non-retryable errors propagate unchanged
        """
        config = self.config
        last_error: Optional[Exception] = None

        for attempt in range(config.max_attempts):
            try:
                result = operation()
                if attempt > 0:
                    self.logger.info(
                        f"{description} succeeded on attempt {attempt + 1}"
                    )
                return result

            except config.retryable_exceptions as e:
                last_error = e
                if attempt == config.max_attempts - 1:
                    break

                delay = _calculate_delay(attempt, config.base_delay, config.max_delay)
                self.logger.warning(
                    f"{description} attempt {attempt + 1} failed, retrying",
                    error=str(e),
                    delay_seconds=f"{delay:.2f}",
                )
                self._sleep(delay)

        self.logger.error(
            f"{description} failed after {config.max_attempts} attempts",
            error=str(last_error),
        )
        raise RetryExhaustedError(
            f"{description} failed after {config.max_attempts} attempts: {last_error}",
            attempts=config.max_attempts,
            last_error=last_error,
        )
