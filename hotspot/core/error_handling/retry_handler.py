"""Retry handler with exponential backoff and optional jitter."""

import asyncio
import inspect
import random
from typing import Any, Callable, Optional, Type, Tuple
import logging

from hotspot.shared.config import Settings
from hotspot.shared.exceptions import BaseAppException, describe_error


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter_range: float = 0.5,
        min_delay: float = 0.1,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
        non_retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
        respect_retryable_flag: bool = True,
        honor_retry_after: bool = True
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter_range = jitter_range  # ±50% jitter by default
        self.min_delay = min_delay
        self.retryable_exceptions = retryable_exceptions or (BaseAppException,)
        self.non_retryable_exceptions = non_retryable_exceptions or ()
        # When False, BaseAppException.retryable is ignored and the exception type decides
        self.respect_retryable_flag = respect_retryable_flag
        self.honor_retry_after = honor_retry_after


class RetryHandler:
    """Handles retry logic with exponential backoff and jitter."""

    def __init__(self, config: Optional[RetryConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or RetryConfig()
        self.logger = logger or logging.getLogger(__name__)

    def calculate_delay(self, attempt: int, base_delay: Optional[float] = None) -> float:
        """Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-based)
            base_delay: Override base delay for this calculation

        Returns:
            Delay in seconds with jitter applied
        """
        if base_delay is None:
            base_delay = self.config.base_delay

        delay = base_delay * (self.config.exponential_base ** attempt)
        delay = min(delay, self.config.max_delay)

        if self.config.jitter_range:
            jitter = random.uniform(-self.config.jitter_range, self.config.jitter_range)
            delay = delay * (1 + jitter)

        return max(self.config.min_delay, delay)

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if an exception should trigger a retry.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if should retry, False otherwise
        """
        if attempt >= self.config.max_retries:
            return False

        if isinstance(exception, self.config.non_retryable_exceptions):
            return False

        if self.config.respect_retryable_flag and isinstance(exception, BaseAppException):
            return exception.retryable

        return isinstance(exception, self.config.retryable_exceptions)

    async def execute_with_retry(
        self,
        func: Callable,
        *args,
        correlation_id: Optional[str] = None,
        **kwargs
    ) -> Any:
        """Execute a function with retry logic.

        Args:
            func: Function to execute (sync or async)
            *args: Arguments for the function
            correlation_id: Correlation ID for logging
            **kwargs: Keyword arguments for the function

        Returns:
            Result of the function execution

        Raises:
            Last exception if all retries are exhausted
        """
        name = getattr(func, "__name__", repr(func))
        last_exception = None

        for attempt in range(self.config.max_retries + 1):
            try:
                self.logger.info(
                    f"Executing {name}, attempt {attempt + 1}/{self.config.max_retries + 1}",
                    extra={
                        "correlation_id": correlation_id,
                        "function": name,
                        "attempt": attempt + 1,
                        "max_attempts": self.config.max_retries + 1
                    }
                )

                result = func(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result

                if attempt > 0:
                    self.logger.info(
                        f"Function {name} succeeded on attempt {attempt + 1}",
                        extra={
                            "correlation_id": correlation_id,
                            "function": name,
                            "successful_attempt": attempt + 1
                        }
                    )

                return result

            except Exception as e:
                last_exception = e

                self.logger.warning(
                    f"Function {name} failed on attempt {attempt + 1}: {describe_error(e)}",
                    extra={
                        "correlation_id": correlation_id,
                        "function": name,
                        "attempt": attempt + 1,
                        "error": str(e),
                        "error_type": type(e).__name__
                    }
                )

                if not self.should_retry(e, attempt):
                    self.logger.error(
                        f"Not retrying {name} due to non-retryable error or max attempts reached",
                        exc_info=attempt >= self.config.max_retries,
                        extra={
                            "correlation_id": correlation_id,
                            "function": name,
                            "final_error": str(e),
                            "total_attempts": attempt + 1
                        }
                    )
                    raise

                if (
                    self.config.honor_retry_after
                    and isinstance(e, BaseAppException)
                    and e.retry_after
                ):
                    delay = e.retry_after
                    self.logger.info(f"Using exception-specified retry delay: {delay}s")
                else:
                    delay = self.calculate_delay(attempt)

                self.logger.info(
                    f"Retrying {name} in {delay:.2f} seconds",
                    extra={
                        "correlation_id": correlation_id,
                        "function": name,
                        "delay": delay,
                        "next_attempt": attempt + 2
                    }
                )

                await asyncio.sleep(delay)

        # Only reached when max_retries is negative
        raise last_exception or RuntimeError(f"{name} was never executed")


# Platform crawls retry on any exception: 2s, 4s between three attempts
PLATFORM_CRAWL_RETRY = RetryConfig(
    max_retries=2,
    base_delay=2.0,
    max_delay=60.0,
    exponential_base=2.0,
    jitter_range=0.0,
    min_delay=0.0,
    retryable_exceptions=(Exception,),
    respect_retryable_flag=False,
    honor_retry_after=False
)


def platform_retry_config(settings: Settings) -> RetryConfig:
    """``PLATFORM_CRAWL_RETRY`` with counts and delays taken from settings."""
    return RetryConfig(
        max_retries=settings.CRAWL_MAX_RETRIES,
        base_delay=settings.CRAWL_RETRY_BASE_DELAY,
        max_delay=PLATFORM_CRAWL_RETRY.max_delay,
        exponential_base=settings.CRAWL_RETRY_MULTIPLIER,
        jitter_range=0.0,
        min_delay=0.0,
        retryable_exceptions=(Exception,),
        respect_retryable_flag=False,
        honor_retry_after=False
    )
