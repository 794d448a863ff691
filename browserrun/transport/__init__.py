"""Transport module - WebDriver server HTTP probing."""

from .retry_policy import (
    RetryPolicy,
    default_retry_policy,
    startup_poll_policy,
)
from .status_client import STATUS_PATH, StatusClient

__all__ = [
    "STATUS_PATH",
    "StatusClient",
    "RetryPolicy",
    "default_retry_policy",
    "startup_poll_policy",
]
