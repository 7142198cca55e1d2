"""Exponential backoff for transient Gmail API failures."""

import logging
import time
from typing import Callable, TypeVar

from mailsweep.errors import GatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """
    Run gateway calls with bounded exponential backoff.

    Transient failures (rate limit, 5xx) are retried after
    ``base_delay * 2**attempt`` seconds, capped at ``max_delay``, for up to
    ``max_attempts`` additional attempts. Anything else is raised at once.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Wait before retry number ``attempt`` (0-based)."""
        return min(self.base_delay * (2**attempt), self.max_delay)

    def execute(self, operation: Callable[[], T]) -> T:
        """
        Call ``operation`` until it succeeds or retries run out.

        Raises:
            GatewayError: The terminal failure, or the last transient one.
        """
        attempt = 0
        while True:
            try:
                return operation()
            except GatewayError as e:
                if not e.transient or attempt >= self.max_attempts:
                    raise
                wait = self.delay_for(attempt)
                logger.warning(
                    f"Transient Gmail error ({e}); retry {attempt + 1}/"
                    f"{self.max_attempts} in {wait:.1f}s"
                )
                self.sleep(wait)
                attempt += 1
