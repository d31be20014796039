"""Retry with exponential backoff.

Used by the orchestrator around release API calls; components themselves
never retry.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    """Maximum number of attempts (including the first)"""

    initial_delay: float = 1.0
    """Delay in seconds before the first retry"""

    max_delay: float = 30.0
    """Upper bound for any single delay"""

    exponential_base: float = 2.0
    """Delay multiplier per attempt"""

    jitter_factor: float = 0.1
    """Random jitter as a fraction of the delay (0 disables it)"""

    exceptions: tuple[type[Exception], ...] = (Exception,)
    """Exception types that trigger a retry"""

    sleep: Callable[[float], bool | None] | None = None
    """Sleep function used between attempts (defaults to time.sleep).

    Returning True stops retrying, so ``threading.Event.wait`` on a
    cancellation event cuts a backoff short.
    """


def calculate_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-indexed)."""
    delay = min(config.initial_delay * (config.exponential_base**attempt), config.max_delay)
    if config.jitter_factor:
        jitter = delay * config.jitter_factor
        delay += random.uniform(-jitter, jitter)
    return max(0.0, delay)


def call_with_retry(func: Callable[[], T], config: RetryConfig, *, description: str = "") -> T:
    """Call ``func`` until it succeeds or attempts run out.

    Exceptions not listed in ``config.exceptions`` propagate immediately;
    the last matching exception propagates once attempts are exhausted
    or when ``config.sleep`` reports an interruption.
    """
    name = description or getattr(func, "__name__", "operation")
    for attempt in range(config.max_attempts):
        try:
            return func()
        except config.exceptions as e:
            if attempt + 1 >= config.max_attempts:
                logger.warning(f"Giving up on {name} after {config.max_attempts} attempts")
                raise
            delay = calculate_delay(config, attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{config.max_attempts} of {name} failed with "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )
            if (config.sleep or time.sleep)(delay) is True:
                logger.info(f"Retry of {name} interrupted")
                raise
    raise RuntimeError("max_attempts must be at least 1")

