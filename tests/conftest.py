from __future__ import annotations

import io
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

from browserrun.settings.schema import RunConfiguration, RunMode, SeleniumSettings, WorkerPolicy


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast tests with stubbed processes and network")
    config.addinivalue_line("markers", "integration: tests touching real files or subprocesses")


class FakeProcess:
    """Popen stand-in: output is available immediately, wait() yields the exit code."""

    def __init__(self, command: Sequence[str], lines: Iterable[str] = (), exit_code: int = 0, pid: int = 1000,
                 exited: bool = False) -> None:
        self.command = list(command)
        self.stdout = io.BytesIO("".join(f"{line}\n" for line in lines).encode("utf-8"))
        self.pid = pid
        self._exit_code = exit_code
        self.returncode: Optional[int] = exit_code if exited else None
        self.terminated = False
        self.killed = False

    def poll(self) -> Optional[int]:
        return self.returncode

    def wait(self, timeout: Optional[float] = None) -> int:
        if self.returncode is None:
            self.returncode = self._exit_code
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9


Script = Callable[[List[str]], Tuple[List[str], int]]


class FakePopen:
    """Records every command; ``script`` decides each child's output and exit code."""

    def __init__(self, script: Optional[Script] = None, fail_on: Optional[Callable[[List[str]], bool]] = None,
                 exited: bool = False) -> None:
        self.script = script or (lambda command: ([], 0))
        self.fail_on = fail_on or (lambda command: False)
        self.exited = exited
        self.calls: List[Tuple[List[str], dict]] = []
        self.processes: List[FakeProcess] = []

    def __call__(self, command: Sequence[str], **kwargs) -> FakeProcess:
        command = list(command)
        self.calls.append((command, kwargs))
        if self.fail_on(command):
            raise OSError("cannot fork")
        lines, exit_code = self.script(command)
        process = FakeProcess(command, lines, exit_code, pid=1000 + len(self.processes), exited=self.exited)
        self.processes.append(process)
        return process

    @property
    def commands(self) -> List[List[str]]:
        return [command for command, _ in self.calls]


@pytest.fixture
def fake_popen() -> FakePopen:
    return FakePopen()


@pytest.fixture
def popen_factory() -> type:
    return FakePopen


@pytest.fixture
def make_config() -> Callable[..., RunConfiguration]:
    def factory(**overrides) -> RunConfiguration:
        environments = tuple(overrides.pop("environments", ("default",)))
        values = dict(
            environments=environments,
            known_environments=frozenset(environments) | {"default"},
            worker_policy=WorkerPolicy(),
            selenium=SeleniumSettings(),
            run_mode=RunMode.TOP_LEVEL,
            colors=False,
        )
        values.update(overrides)
        return RunConfiguration(**values)

    return factory
