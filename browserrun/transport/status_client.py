"""HTTP client for the WebDriver server status endpoint.

Used by the server lifecycle manager to decide when a freshly spawned
server is ready to accept sessions:
- GET /wd/hub/status - server build and readiness information
"""

import time
from typing import Any, Callable, Optional

import requests

from .retry_policy import RetryPolicy, default_retry_policy, startup_poll_policy

STATUS_PATH = "/wd/hub/status"


class StatusClient:
    """Polls a WebDriver server's status endpoint."""

    def __init__(
        self,
        base_url: str,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the status client.

        Args:
            base_url: Base URL of the server (e.g., http://127.0.0.1:4444).
            retry_policy: Retry policy for failed status requests.
            request_timeout: Per-request timeout in seconds.
            session: Optional pre-configured requests session.
        """
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or default_retry_policy()
        self.request_timeout = request_timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    @property
    def status_url(self) -> str:
        return f"{self.base_url}{STATUS_PATH}"

    def get_status(self) -> dict[str, Any]:
        """Fetch the status document.

        Raises:
            requests.RequestException: After all retries are exhausted.
        """
        response = self._request_with_retry("GET", self.status_url, timeout=self.request_timeout)
        return response.json()

    def is_ready(self) -> bool:
        """Single, non-retrying readiness check."""
        try:
            response = self._session.get(self.status_url, timeout=self.request_timeout)
        except (requests.ConnectionError, requests.Timeout):
            return False
        if response.status_code >= 400:
            return False
        try:
            data = response.json()
        except ValueError:
            return True
        value = data.get("value") if isinstance(data, dict) else None
        if isinstance(value, dict) and "ready" in value:
            return bool(value["ready"])
        return True

    def wait_until_ready(
        self,
        timeout: float,
        keep_waiting: Optional[Callable[[], bool]] = None,
        poll_policy: Optional[RetryPolicy] = None,
    ) -> bool:
        """Poll until the server reports ready.

        Args:
            timeout: Maximum wait time in seconds.
            keep_waiting: Checked before every check; returning False stops
                the wait early (e.g. the server process has exited).
            poll_policy: Delay schedule between checks.

        Returns:
            True once ready, False if the timeout expired or waiting was abandoned.
        """
        policy = poll_policy or startup_poll_policy()
        deadline = time.monotonic() + timeout
        attempt = 0

        while True:
            if keep_waiting is not None and not keep_waiting():
                return False
            if self.is_ready():
                return True

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(policy.get_delay(attempt), remaining))
            attempt += 1

    def _request_with_retry(self, method: str, url: str, **kwargs) -> requests.Response:
        """Execute HTTP request with retry logic on connection errors and 5xx."""
        last_error: Optional[Exception] = None

        for attempt in range(self.retry_policy.max_retries + 1):
            try:
                response = self._session.request(method, url, **kwargs)

                if response.status_code < 500:
                    response.raise_for_status()
                    return response

                if attempt < self.retry_policy.max_retries:
                    time.sleep(self.retry_policy.get_delay(attempt))
                    continue

                response.raise_for_status()

            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
                if attempt < self.retry_policy.max_retries:
                    time.sleep(self.retry_policy.get_delay(attempt))
                    continue
                raise

        if last_error:
            raise last_error
        raise RuntimeError("Request failed with no error captured")

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
