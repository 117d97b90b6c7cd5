"""
Retry policy for transient network failures.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Optional, TypeVar

from ..errors import NetworkTransportError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    initial_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number."""
        delay = min(
            self.initial_delay_seconds * (self.exponential_base ** attempt),
            self.max_delay_seconds,
        )
        if self.jitter:
            jitter_range = delay * self.jitter_factor
            delay += random.uniform(-jitter_range, jitter_range)
        return max(delay, 0)


async def retry_transport(
    operation: Callable[[], Coroutine[Any, Any, T]],
    config: RetryConfig,
    description: str = "operation",
) -> T:
    """Run ``operation``, retrying only ``NetworkTransportError``."""
    last_error: Optional[NetworkTransportError] = None

    for attempt in range(config.max_attempts):
        try:
            return await operation()
        except NetworkTransportError as e:
            last_error = e
            if attempt < config.max_attempts - 1:
                delay = config.get_delay(attempt)
                logger.warning(
                    f"{description}: attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    raise last_error or NetworkTransportError(f"{description}: all retry attempts exhausted")


__all__ = ["RetryConfig", "retry_transport"]
