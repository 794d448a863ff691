"""Settings data models for browserrun.

Defines the resolved, immutable run configuration handed to the
orchestrator, plus the validation result types used by the settings
validator.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional


DEFAULT_ENVIRONMENT = "default"
DEFAULT_SELENIUM_HOST = "127.0.0.1"
DEFAULT_SELENIUM_PORT = 4444

# Pre-0.5 style driver options that now belong in selenium.cli_args
DEPRECATED_DRIVER_OPTIONS = {
    "firefox_profile": "webdriver.firefox.profile",
    "chrome_driver": "webdriver.chrome.driver",
    "ie_driver": "webdriver.ie.driver",
}


class RunMode(str, Enum):
    """Whether this process was started by a user or by a parent run."""
    TOP_LEVEL = "top_level"
    CHILD = "child"


class WorkerPolicyKind(str, Enum):
    """How many worker processes a pooled run may use."""
    DISABLED = "disabled"
    AUTO = "auto"
    FIXED = "fixed"


@dataclass(frozen=True)
class WorkerPolicy:
    """Worker pooling policy resolved from ``test_workers``."""
    kind: WorkerPolicyKind = WorkerPolicyKind.DISABLED
    count: int = 1

    @property
    def enabled(self) -> bool:
        return self.kind is not WorkerPolicyKind.DISABLED

    @classmethod
    def from_setting(cls, value: Any) -> "WorkerPolicy":
        """Build a policy from the raw ``test_workers`` setting.

        ``True`` means one worker per core; a mapping may carry ``enabled``
        and ``workers`` (``"auto"`` or a positive integer).
        """
        if value is True:
            return cls(WorkerPolicyKind.AUTO)
        if not isinstance(value, Mapping) or not value.get("enabled"):
            return cls()

        workers = value.get("workers", 1)
        if workers == "auto":
            return cls(WorkerPolicyKind.AUTO)
        if isinstance(workers, int) and not isinstance(workers, bool):
            return cls(WorkerPolicyKind.FIXED, workers)
        return cls(WorkerPolicyKind.FIXED, 1)


@dataclass(frozen=True)
class SeleniumSettings:
    """Resolved settings for the WebDriver server."""
    managed: bool = False
    server_path: Optional[str] = None
    host: str = DEFAULT_SELENIUM_HOST
    port: int = DEFAULT_SELENIUM_PORT
    cli_args: Mapping[str, Any] = field(default_factory=dict)
    log_path: Optional[str] = None
    start_session: bool = True
    start_timeout: float = 30.0

    def __post_init__(self):
        object.__setattr__(self, "cli_args", MappingProxyType(dict(self.cli_args)))

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True)
class RunConfiguration:
    """Everything the orchestrator needs for one invocation.

    Built once by the resolver and never mutated afterwards; derived
    variants are produced with ``dataclasses.replace``.
    """
    environments: tuple[str, ...]
    known_environments: frozenset[str] = frozenset()
    worker_policy: WorkerPolicy = field(default_factory=WorkerPolicy)
    single_test_path: Optional[str] = None
    testcase: Optional[str] = None
    group: Optional[str] = None
    source_folders: tuple[str, ...] = ()
    live_output: bool = False
    retries: int = 0
    selenium: SeleniumSettings = field(default_factory=SeleniumSettings)
    run_mode: RunMode = RunMode.TOP_LEVEL
    output_folder: Optional[str] = None
    test_settings: Mapping[str, Any] = field(default_factory=dict)
    globals_path: Optional[str] = None
    colors: bool = True
    save_report: bool = False
    argv: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.environments:
            raise ValueError("At least one environment is required")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")
        object.__setattr__(self, "test_settings", MappingProxyType(dict(self.test_settings)))

    @property
    def is_child(self) -> bool:
        return self.run_mode is RunMode.CHILD

    @property
    def multiple_environments(self) -> bool:
        return len(self.environments) > 1

    @property
    def single_test_run(self) -> bool:
        return self.single_test_path is not None

    def test_source(self) -> list[Path]:
        """Paths handed to the test runner: the single test, the group, or the source folders."""
        if self.single_test_path:
            return [Path(self.single_test_path)]
        if self.group:
            return [Path(_group_path(self.group, self.source_folders))]
        return [Path(folder) for folder in self.source_folders]


def _group_path(group: str, source_folders: tuple[str, ...]) -> str:
    """Prefix a group name with the source folder when exactly one is configured."""
    if len(source_folders) != 1:
        return group
    folder = source_folders[0]
    if group.startswith(folder):
        return group
    return str(Path(folder) / group)


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of settings validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"
