"""Randomized exponential backoff.

``next_delay`` is the single decision function; the tenacity strategies below
only adapt it to a ``Retrying`` controller.
"""

import logging
import random
from typing import Callable, Tuple

from tenacity import RetryCallState
from tenacity.stop import stop_base
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)


def retry_allowed(attempt: int, config) -> bool:
    return attempt < config.max_retries


def next_delay(attempt: int, config, rand: Callable[[], float] = random.random) -> Tuple[float, bool]:
    """Compute the delay before retrying after the 0-based ``attempt``.

    Args:
        attempt: Number of the attempt that just failed, starting at 0.
        config: Object carrying ``max_retries``, ``backoff_min_delay``,
            ``backoff_max_delay`` and ``backoff_delay_factor``.
        rand: Source of uniform floats in [0, 1).

    Returns:
        ``(delay, allowed)``. ``allowed`` is False once ``attempt`` reaches
        ``max_retries``, in which case ``delay`` is 0. Otherwise ``delay`` lies
        in ``[min + (base - min) / 2, base]`` where ``base`` is
        ``min * factor ** attempt`` capped at the maximum delay.
    """
    if not retry_allowed(attempt, config):
        logger.debug("Backoff exhausted: attempt %s of %s", attempt, config.max_retries)
        return 0.0, False

    min_delay = float(config.backoff_min_delay)
    max_delay = float(config.backoff_max_delay)
    base = min(min_delay * config.backoff_delay_factor ** attempt, max_delay)
    delay = (rand() / 2 + 0.5) * (base - min_delay) + min_delay
    logger.debug("Backoff attempt %s of %s: %.2fs", attempt, config.max_retries, delay)
    return delay, True


class wait_jittered_backoff(wait_base):
    """Wait strategy returning the ``next_delay`` delay for the failed attempt."""

    def __init__(self, config, rand: Callable[[], float] = random.random):
        self.config = config
        self.rand = rand

    def __call__(self, retry_state: RetryCallState) -> float:
        delay, _ = next_delay(retry_state.attempt_number - 1, self.config, self.rand)
        return delay


class stop_when_backoff_exhausted(stop_base):
    """Stop strategy that gives up once ``next_delay`` disallows a retry."""

    def __init__(self, config):
        self.config = config

    def __call__(self, retry_state: RetryCallState) -> bool:
        return not retry_allowed(retry_state.attempt_number - 1, self.config)
