"""Exception types raised by the orchestrator.

Fatal errors (configuration, discovery, server start) abort the run before
or instead of dispatching work. Per-unit failures never raise; they are
recorded by the result collector.
"""


class BrowserRunError(Exception):
    """Base class for all browserrun errors."""


class ConfigurationError(BrowserRunError):
    """Settings are invalid or an unknown environment was requested."""


class DiscoveryError(BrowserRunError):
    """Test module paths could not be enumerated."""


class ServerStartError(BrowserRunError):
    """The managed WebDriver server failed to start."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class SpawnError(BrowserRunError):
    """A child process could not be created for a work unit."""

    def __init__(self, label: str, cause: Exception):
        super().__init__(f"Failed to start child process for {label}: {cause}")
        self.label = label
        self.cause = cause
