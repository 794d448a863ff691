"""Work units and child process handles."""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

# (foreground, background) pairs used to tell children apart
COLOR_PALETTE = (
    ("red", "white"),
    ("green", "black"),
    ("blue", "white"),
    ("magenta", "white"),
)

SPAWN_FAILURE_EXIT_CODE = 1


def shuffled_palette(rng: Optional[random.Random] = None) -> list[tuple[str, str]]:
    """The four palette entries in random order."""
    colors = list(COLOR_PALETTE)
    (rng or random).shuffle(colors)
    return colors


@dataclass(frozen=True)
class EnvironmentUnit:
    """Run the whole suite against one named environment."""
    env: str

    @property
    def label(self) -> str:
        return f"{self.env} environment"

    def child_flags(self) -> list[str]:
        return ["--env", self.env]


@dataclass(frozen=True)
class ModuleUnit:
    """Run a single test module."""
    path: str
    key: str

    @property
    def label(self) -> str:
        return self.key

    def child_flags(self) -> list[str]:
        return ["--test", self.path]


WorkUnit = Union[EnvironmentUnit, ModuleUnit]


class ChildState(str, Enum):
    """Lifecycle of a child process."""
    SPAWNED = "spawned"
    RUNNING = "running"
    EXITED = "exited"


@dataclass
class ChildHandle:
    """One child process, its output and its exit status.

    The exit code can be recorded exactly once.
    """
    label: str
    index: int
    color: tuple[str, str]
    unit: WorkUnit
    command: list[str] = field(default_factory=list)
    output: list[str] = field(default_factory=list)
    state: ChildState = ChildState.SPAWNED
    exit_code: Optional[int] = None
    process: Any = None
    error: Optional[Exception] = None

    @property
    def running(self) -> bool:
        return self.state is not ChildState.EXITED

    @property
    def failed(self) -> bool:
        return self.state is ChildState.EXITED and self.exit_code != 0

    def mark_running(self, process: Any) -> None:
        if self.state is not ChildState.SPAWNED:
            raise RuntimeError(f"{self.label}: cannot start from state {self.state.value}")
        self.process = process
        self.state = ChildState.RUNNING

    def mark_exited(self, exit_code: int) -> None:
        if self.state is ChildState.EXITED:
            raise RuntimeError(f"{self.label}: exit code already recorded ({self.exit_code})")
        self.exit_code = exit_code
        self.state = ChildState.EXITED
