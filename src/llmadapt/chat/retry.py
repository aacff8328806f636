# src/llmadapt/chat/retry.py
"""
Retry policy for backend calls.

Every chat and embedding call may be wrapped in a `RetryPolicy`. Retried
operations must be idempotent from the backend's perspective: the policy
re-invokes the whole operation and keeps no state between attempts.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Coroutine, Optional, Tuple, Type, TypeVar

from ..exceptions import (ConfigError, DimensionMismatchError, EmbeddingProviderUnavailableError,
                          InvalidOptionsTypeError, ProviderError, StreamProtocolError,
                          UnsupportedRoleError)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Caller misuse: retrying cannot change the outcome.
NON_RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    InvalidOptionsTypeError,
    UnsupportedRoleError,
    DimensionMismatchError,
    ConfigError,
    StreamProtocolError,
)

DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    ProviderError,
    EmbeddingProviderUnavailableError,
    asyncio.TimeoutError,
    ConnectionError,
)


class RetryPolicy:
    """
    Exponential backoff with jitter.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for a single delay, in seconds.
        retry_on: Exception types that trigger a retry.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRYABLE_EXCEPTIONS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Retry delays must not be negative")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.retry_on = retry_on

    @classmethod
    def none(cls) -> "RetryPolicy":
        """A policy that runs the operation exactly once."""
        return cls(max_attempts=1, base_delay=0.0, max_delay=0.0)

    @classmethod
    def from_config(cls, config: Any) -> "RetryPolicy":
        """Build a policy from a `RetryConfig` (or any object with the same attributes)."""
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_seconds,
            max_delay=config.max_delay_seconds,
        )

    def compute_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-based), jittered."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        return delay * (0.5 + random.random())

    def is_retryable(self, error: BaseException) -> bool:
        if isinstance(error, NON_RETRYABLE_EXCEPTIONS):
            return False
        return isinstance(error, self.retry_on)

    async def execute(
        self,
        operation: Callable[[], Coroutine[Any, Any, T]],
        description: Optional[str] = None,
    ) -> T:
        """
        Execute an async operation, retrying transient failures.

        Args:
            operation: Zero-argument callable returning a fresh coroutine per attempt.
            description: Short label used in log messages.

        Returns:
            Result of the first successful attempt.

        Raises:
            The last exception, once attempts are exhausted or a non-retryable
            error occurs.
        """
        label = description or getattr(operation, "__name__", "operation")
        for attempt in range(self.max_attempts):
            try:
                return await operation()
            except Exception as e:
                if not self.is_retryable(e) or attempt + 1 >= self.max_attempts:
                    raise
                delay = self.compute_delay(attempt)
                logger.warning(
                    f"{label} failed (attempt {attempt + 1}/{self.max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable") # pragma: no cover
