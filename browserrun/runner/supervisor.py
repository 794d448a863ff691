"""Child process supervision.

Every work unit runs in its own ``python -m browserrun`` child, which
re-enters the orchestrator in SINGLE mode. One reader thread per child
forwards output lines and the final exit code to an event queue; the
control thread is the only consumer of that queue and the only writer of
child state, so the "last child finished" check can't race.
"""

import logging
import queue
import random
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from ..errors import SpawnError
from .models import (
    SPAWN_FAILURE_EXIT_CODE,
    ChildHandle,
    EnvironmentUnit,
    WorkUnit,
    shuffled_palette,
)
from .output import OutputAggregator

LOGGER = logging.getLogger("browserrun.supervisor")

CHILD_FLAG = "--parallel-child"
ENV_FLAGS = ("-e", "--env")
TEST_FLAGS = ("-t", "--test")
TESTCASE_FLAGS = ("--testcase",)

ResultCallback = Callable[[list[str], int], None]


@dataclass(frozen=True)
class _LineEvent:
    label: str
    line: str


@dataclass(frozen=True)
class _ExitEvent:
    label: str
    exit_code: int


def child_arguments(argv: Sequence[str], unit: WorkUnit) -> list[str]:
    """Arguments for a child: the parent's arguments minus the flag the unit replaces.

    Environment units replace ``--env``, module units replace ``--test``.
    ``--testcase`` is never forwarded since it only applies to explicit
    single-test runs.
    """
    replaced = ENV_FLAGS if isinstance(unit, EnvironmentUnit) else TEST_FLAGS
    dropped = replaced + TESTCASE_FLAGS

    args: list[str] = []
    items = iter(argv)
    for arg in items:
        if arg == CHILD_FLAG:
            continue
        if arg in dropped:
            next(items, None)
            continue
        if any(arg.startswith(f"{flag}=") for flag in dropped if flag.startswith("--")):
            continue
        if any(arg.startswith(flag) and len(arg) > len(flag) for flag in dropped if not flag.startswith("--")):
            continue
        args.append(arg)

    return args + unit.child_flags() + [CHILD_FLAG]


class ProcessSupervisor:
    """Spawns, labels, colors and tracks child processes."""

    def __init__(
        self,
        output: OutputAggregator,
        popen: Callable[..., Any] = subprocess.Popen,
        executable: str = sys.executable,
        palette: Optional[Sequence[tuple[str, str]]] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the supervisor.

        Args:
            output: Aggregator receiving every child's output lines.
            popen: Process factory (``subprocess.Popen`` compatible).
            executable: Python interpreter used for children.
            palette: Display colors; defaults to the shuffled four-color palette.
            rng: Random source for shuffling the palette.
        """
        self.output = output
        self._popen = popen
        self._executable = executable
        self._palette = list(palette) if palette else shuffled_palette(rng)
        self._children: dict[str, ChildHandle] = {}
        self._callbacks: dict[str, Optional[ResultCallback]] = {}
        self._events: "queue.Queue[Union[_LineEvent, _ExitEvent]]" = queue.Queue()

    @property
    def children(self) -> list[ChildHandle]:
        """All children in registration order."""
        return list(self._children.values())

    def running_count(self) -> int:
        """Children whose exit has not been observed yet."""
        return sum(1 for child in self._children.values() if child.running)

    def command_for(self, args: Iterable[str]) -> list[str]:
        return [self._executable, "-m", "browserrun", *args]

    def spawn(self, unit: WorkUnit, args: Sequence[str], on_exit: Optional[ResultCallback] = None) -> ChildHandle:
        """Start a child for ``unit``.

        Raises:
            SpawnError: If the process can't be created. The handle is still
                registered, marked exited with a failure code.
        """
        label = self._unique_label(unit.label)
        index = len(self._children)
        handle = ChildHandle(
            label=label,
            index=index,
            color=self._palette[index % len(self._palette)],
            unit=unit,
            command=self.command_for(args),
        )
        self._children[label] = handle
        self.output.register(handle)

        try:
            process = self._popen(
                handle.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            error = SpawnError(label, e)
            handle.error = error
            handle.mark_exited(SPAWN_FAILURE_EXIT_CODE)
            LOGGER.error("%s", error)
            raise error from e

        handle.mark_running(process)
        self._callbacks[label] = on_exit
        LOGGER.debug("Started %s (pid %s)", label, getattr(process, "pid", "?"))

        reader = threading.Thread(
            target=self._pump,
            args=(label, process),
            name=f"browserrun-{index}",
            daemon=True,
        )
        reader.start()
        return handle

    def process_next_event(self, timeout: Optional[float] = None) -> Optional[ChildHandle]:
        """Handle one queued event.

        Returns:
            The child handle if the event was an exit, else None.

        Raises:
            queue.Empty: If ``timeout`` elapses with no event.
        """
        event = self._events.get(timeout=timeout)
        handle = self._children[event.label]

        if isinstance(event, _LineEvent):
            self.output.append(handle, event.line)
            return None

        handle.mark_exited(event.exit_code)
        LOGGER.debug("%s finished with exit code %s", handle.label, event.exit_code)
        callback = self._callbacks.pop(handle.label, None)
        if callback is not None:
            callback(list(handle.output), event.exit_code)
        return handle

    def wait_for_exit(self) -> ChildHandle:
        """Block until the next child exits (in whatever order they finish)."""
        if self.running_count() == 0:
            raise RuntimeError("No running child processes to wait for")
        while True:
            handle = self.process_next_event()
            if handle is not None:
                return handle

    def _unique_label(self, label: str) -> str:
        candidate, n = label, 2
        while candidate in self._children:
            candidate = f"{label} ({n})"
            n += 1
        return candidate

    def _pump(self, label: str, process: Any) -> None:
        # Runs on the reader thread: only ever touches the event queue
        exit_code = SPAWN_FAILURE_EXIT_CODE
        try:
            stream = process.stdout
            if stream is not None:
                for raw in iter(stream.readline, b""):
                    self._events.put(_LineEvent(label, _decode(raw)))
                stream.close()
            exit_code = process.wait()
        finally:
            self._events.put(_ExitEvent(label, exit_code))


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return raw.rstrip("\r\n")
