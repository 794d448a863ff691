"""Retry policy for polling the WebDriver server.

Provides configurable polling delays with exponential backoff.
"""

from dataclasses import dataclass


@dataclass
class RetryPolicy:
    """Configurable retry policy with exponential backoff."""
    max_retries: int = 3
    initial_delay: float = 0.25
    backoff_factor: float = 2.0
    max_delay: float = 2.0

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt (0-indexed).

        Args:
            attempt: Current attempt number (0 = first retry).

        Returns:
            Delay in seconds before next retry.
        """
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)


def default_retry_policy() -> RetryPolicy:
    """Three quick retries for single status requests."""
    return RetryPolicy()


def startup_poll_policy() -> RetryPolicy:
    """Polling cadence while waiting for a freshly spawned server.

    The number of attempts is bounded by the start timeout rather than
    by ``max_retries``.
    """
    return RetryPolicy(
        max_retries=0,
        initial_delay=0.1,
        backoff_factor=1.5,
        max_delay=1.0,
    )
