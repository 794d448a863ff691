"""Suite runner - executes one non-parallel test suite.

The orchestrator only depends on the ``TestRunner`` protocol. The default
implementation hands test modules to pytest in-process and exposes the
resolved environment settings to tests through the ``browserrun_settings``
fixture.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

import pytest

from ..discovery import read_paths

LOGGER = logging.getLogger("browserrun.suite")


@dataclass
class SuiteOptions:
    """Per-run options passed alongside the environment settings."""
    output_folder: Optional[str] = None
    src_folders: tuple[str, ...] = ()
    live_output: bool = False
    testcase: Optional[str] = None
    retries: int = 0
    start_session: bool = True
    extra: dict[str, Any] = field(default_factory=dict)


class TestRunner(Protocol):
    """What the orchestrator needs from a suite runner."""

    def run(self, source: Sequence[Path], settings: Mapping[str, Any], options: SuiteOptions) -> int:
        """Execute the suite and return its exit code."""
        ...

    def read_paths(self, source: Sequence[Path], settings: Mapping[str, Any]) -> list[Path]:
        """Enumerate module paths; raises DiscoveryError on failure."""
        ...


class SettingsPlugin:
    """pytest plugin exposing the resolved settings as a fixture."""

    def __init__(self, settings: Mapping[str, Any], options: SuiteOptions):
        self._settings = dict(settings)
        self._options = options

    @pytest.fixture(scope="session")
    def browserrun_settings(self) -> dict[str, Any]:
        return self._settings

    @pytest.fixture(scope="session")
    def browserrun_options(self) -> SuiteOptions:
        return self._options


class PytestSuiteRunner:
    """Runs test modules with ``pytest.main``."""

    __test__ = False

    def __init__(self, pytest_main: Optional[Callable[..., int]] = None):
        self._pytest_main = pytest_main or pytest.main

    def read_paths(self, source: Sequence[Path], settings: Mapping[str, Any]) -> list[Path]:
        return read_paths(source, dict(settings))

    def build_args(self, source: Sequence[Path], settings: Mapping[str, Any], options: SuiteOptions) -> list[str]:
        """Translate settings and options into pytest command line arguments."""
        args = [str(path) for path in source]

        if options.testcase:
            args += ["-k", options.testcase]

        marker_expr = _marker_expression(settings.get("tag_filter"), settings.get("skiptags"))
        if marker_expr:
            args += ["-m", marker_expr]

        if options.output_folder:
            name = Path(source[0]).stem if len(source) == 1 else "results"
            args.append(f"--junitxml={Path(options.output_folder) / f'{name}.xml'}")

        if settings.get("silent", True) and not settings.get("output", True):
            args.append("-q")

        return args

    def run(self, source: Sequence[Path], settings: Mapping[str, Any], options: SuiteOptions) -> int:
        args = self.build_args(source, settings, options)
        code = 1

        for attempt in range(options.retries + 1):
            if attempt:
                LOGGER.warning("Retrying suite (attempt %d of %d)", attempt + 1, options.retries + 1)
            LOGGER.debug("pytest %s", " ".join(args))
            code = int(self._pytest_main(args, plugins=[SettingsPlugin(settings, options)]))
            if code == 0:
                break

        return code


def _marker_expression(tags: Optional[Sequence[str]], skiptags: Optional[Sequence[str]]) -> Optional[str]:
    parts = []
    if tags:
        parts.append("(" + " or ".join(tags) + ")" if len(tags) > 1 else tags[0])
    for tag in skiptags or []:
        parts.append(f"not {tag}")
    return " and ".join(parts) or None
