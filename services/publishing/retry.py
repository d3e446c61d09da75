"""
Retry with backoff for transient upload failures.
"""
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Tuple, Type

from loguru import logger


class RetryPolicy(str, Enum):
    """Retry policy types."""
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    FIXED_DELAY = "fixed_delay"


class RetryManager:
    """
    Retries an async operation on a chosen set of exceptions.

    ``max_attempts`` counts the first try, so 3 means two retries.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        policy: RetryPolicy = RetryPolicy.EXPONENTIAL_BACKOFF,
        base_delay: float = 2.0,
        max_delay: float = 60.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.max_attempts = max(1, max_attempts)
        self.policy = policy
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.retry_on = retry_on
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """
        Delay after a failed attempt.

        Args:
            attempt: Failed attempt number (0-indexed)
        """
        if self.policy == RetryPolicy.EXPONENTIAL_BACKOFF:
            return min(self.base_delay * (2 ** attempt), self.max_delay)
        return self.base_delay

    async def execute_with_retry(
        self,
        operation: Callable[..., Awaitable[Any]],
        operation_name: str,
        *args,
        **kwargs
    ) -> Any:
        """
        Run ``operation`` until it succeeds or attempts run out.

        Exceptions outside ``retry_on`` propagate immediately; the last
        retryable exception is re-raised once attempts are exhausted.
        """
        last_exception = None

        for attempt in range(self.max_attempts):
            try:
                result = await operation(*args, **kwargs)
                if attempt > 0:
                    logger.info(f"✅ {operation_name} succeeded on attempt {attempt + 1}")
                return result
            except self.retry_on as e:
                last_exception = e
                if attempt < self.max_attempts - 1:
                    delay = self.calculate_delay(attempt)
                    logger.warning(
                        f"⚠️  {operation_name} failed (attempt {attempt + 1}/{self.max_attempts}): {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    await self._sleep(delay)
                else:
                    logger.error(f"❌ {operation_name} failed after {self.max_attempts} attempts")

        raise last_exception
