"""Bounded retry with exponential backoff for transient upload errors."""

import time
from typing import Callable, Optional, TypeVar

from common.exceptions import UploadError
from common.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Re-invokes an operation while it fails with a retryable UploadError.

    Non-retryable errors propagate on the first failure. After
    ``max_retries`` retries the last error propagates unchanged.
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_multiplier: float = 2,
        initial_delay: float = 0.5,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_multiplier = backoff_multiplier
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        """Build a policy from the client Config retry settings."""
        retry_config = config.get_retry_config()
        return cls(
            max_retries=retry_config['max_retries'],
            backoff_multiplier=retry_config['retry_backoff_multiplier'],
            initial_delay=retry_config['retry_initial_delay'],
        )

    @classmethod
    def disabled(cls) -> "RetryPolicy":
        return cls(max_retries=0)

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        return min(self.max_delay, self.initial_delay * self.backoff_multiplier ** attempt)

    def call(self, operation: Callable[..., T], *args, description: Optional[str] = None, **kwargs) -> T:
        """
        Run ``operation(*args, **kwargs)`` under this policy.

        Args:
            operation: Callable to invoke
            description: Label used in retry log lines

        Returns:
            Result of the first successful invocation

        Raises:
            UploadError: The first non-retryable error, or the last retryable
                one once retries are exhausted
        """
        label = description or getattr(operation, '__name__', 'operation')
        for attempt in range(self.max_retries + 1):
            try:
                return operation(*args, **kwargs)
            except UploadError as e:
                if not e.retryable or attempt >= self.max_retries:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Transient failure in {label} (attempt {attempt + 1}/{self.max_retries + 1}): "
                    f"{e.code} {e.message}, retrying in {delay:.2f}s"
                )
                self._sleep(delay)
