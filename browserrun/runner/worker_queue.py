"""Bounded-concurrency dispatcher for work units."""

import logging
from collections import deque
from typing import Callable, Iterable, Optional, Sequence

from ..errors import SpawnError
from .models import ChildHandle, WorkUnit
from .supervisor import ProcessSupervisor

LOGGER = logging.getLogger("browserrun.worker_queue")

UnitResultCallback = Callable[[ChildHandle, list[str], int], None]


class WorkerQueue:
    """Drains pending work units through at most ``concurrency`` children.

    A sliding window: whenever a child exits the next pending unit is
    dispatched straight away. Completion is reported once, when no child
    is left running.
    """

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        units: Iterable[WorkUnit],
        concurrency: int,
        args_for: Callable[[WorkUnit], Sequence[str]],
        on_result: Optional[UnitResultCallback] = None,
        on_complete: Optional[Callable[[], None]] = None,
        halt_on_spawn_error: bool = True,
    ):
        """Initialize the queue.

        Args:
            supervisor: Supervisor used to spawn and await children.
            units: Work units in dispatch order.
            concurrency: Maximum number of simultaneously running children.
            args_for: Builds the child arguments for a unit.
            on_result: Called with (handle, output_lines, exit_code) per finished child.
            on_complete: Called once when the last child has finished.
            halt_on_spawn_error: Stop dispatching pending units after a spawn
                failure. Already running children are never touched.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._supervisor = supervisor
        self._pending: deque[WorkUnit] = deque(units)
        self.concurrency = concurrency
        self._args_for = args_for
        self._on_result = on_result
        self._on_complete = on_complete
        self._halt_on_spawn_error = halt_on_spawn_error
        self.halted = False
        self.spawn_errors: list[SpawnError] = []
        self.peak_running = 0
        self.completed = False

    @property
    def pending(self) -> list[WorkUnit]:
        """Units never dispatched (non-empty only after a halt)."""
        return list(self._pending)

    def run(self) -> None:
        """Dispatch everything and block until the last child finishes."""
        self._dispatch_available()
        while self._supervisor.running_count() > 0:
            self._supervisor.wait_for_exit()
            self._dispatch_available()

        self.completed = True
        if self.halted and self._pending:
            LOGGER.warning("%d work unit(s) were not started", len(self._pending))
        if self._on_complete is not None:
            self._on_complete()

    def _dispatch_available(self) -> None:
        while self._pending and not self.halted and self._supervisor.running_count() < self.concurrency:
            unit = self._pending.popleft()
            try:
                self._spawn(unit)
            except SpawnError as e:
                self.spawn_errors.append(e)
                if self._halt_on_spawn_error:
                    self.halted = True
                continue
            self.peak_running = max(self.peak_running, self._supervisor.running_count())

    def _spawn(self, unit: WorkUnit) -> ChildHandle:
        spawned: list[ChildHandle] = []

        def on_exit(lines: list[str], exit_code: int) -> None:
            # Exit events are handled on the control thread after spawn() returned
            if self._on_result is not None:
                self._on_result(spawned[0], lines, exit_code)

        spawned.append(self._supervisor.spawn(unit, self._args_for(unit), on_exit=on_exit))
        return spawned[0]
