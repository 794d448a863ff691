from __future__ import annotations

import io
import threading
from typing import Dict, List, Tuple

import pytest

from browserrun.runner.models import EnvironmentUnit, ModuleUnit
from browserrun.runner.output import OutputAggregator
from browserrun.runner.supervisor import ProcessSupervisor
from browserrun.runner.worker_queue import WorkerQueue


class GatedProcess:
    """Exits only once its gate is opened, so tests control completion order."""

    def __init__(self, gate: threading.Event, exit_code: int = 0) -> None:
        self.stdout = io.BytesIO(b"")
        self.pid = 2000
        self._gate = gate
        self._exit_code = exit_code

    def wait(self, timeout: float | None = None) -> int:
        self._gate.wait(5)
        return self._exit_code


def _modules(count: int) -> List[ModuleUnit]:
    return [ModuleUnit(f"/suite/test_{i}.py", f"test_{i}") for i in range(count)]


def _supervisor(popen) -> ProcessSupervisor:
    return ProcessSupervisor(OutputAggregator(colors=False, echo=lambda line: None), popen=popen, executable="py")


def _exit_code_by_path(command: List[str]) -> Tuple[List[str], int]:
    path = command[command.index("--test") + 1]
    return [f"ran {path}"], 1 if path.endswith("test_2.py") else 0


@pytest.mark.unit
def test_queue_never_exceeds_concurrency_and_drains_everything(popen_factory) -> None:
    popen = popen_factory(script=_exit_code_by_path)
    results = []
    completions = []
    queue = WorkerQueue(
        _supervisor(popen),
        _modules(7),
        concurrency=3,
        args_for=lambda unit: unit.child_flags(),
        on_result=lambda handle, lines, code: results.append((handle.label, lines, code)),
        on_complete=lambda: completions.append(len(results)),
    )

    queue.run()

    assert queue.peak_running == 3
    assert queue.completed
    assert queue.pending == []
    assert len(popen.calls) == 7
    assert completions == [7]
    assert sorted(label for label, _, _ in results) == [f"test_{i}" for i in range(7)]
    assert {label: code for label, _, code in results}["test_2"] == 1
    assert ("test_0", ["ran /suite/test_0.py"], 0) in results


@pytest.mark.unit
def test_units_dispatch_in_order(fake_popen) -> None:
    queue = WorkerQueue(_supervisor(fake_popen), _modules(4), concurrency=1, args_for=lambda unit: unit.child_flags())

    queue.run()

    assert queue.peak_running == 1
    assert [command[-1] for command in fake_popen.commands] == [f"/suite/test_{i}.py" for i in range(4)]


@pytest.mark.unit
def test_spawn_failure_halts_dispatch_but_lets_running_children_finish(popen_factory) -> None:
    popen = popen_factory(fail_on=lambda command: command[-1].endswith("test_2.py"))
    results = []
    queue = WorkerQueue(
        _supervisor(popen),
        _modules(5),
        concurrency=2,
        args_for=lambda unit: unit.child_flags(),
        on_result=lambda handle, lines, code: results.append(handle.label),
    )

    queue.run()

    assert queue.halted
    assert [e.label for e in queue.spawn_errors] == ["test_2"]
    assert [unit.key for unit in queue.pending] == ["test_3", "test_4"]
    assert sorted(results) == ["test_0", "test_1"]
    assert queue.completed


@pytest.mark.unit
def test_spawn_failure_without_halt_dispatches_the_rest(popen_factory) -> None:
    popen = popen_factory(fail_on=lambda command: "chrome" in command)
    units = [EnvironmentUnit("chrome"), EnvironmentUnit("firefox"), EnvironmentUnit("edge")]
    queue = WorkerQueue(
        _supervisor(popen),
        units,
        concurrency=len(units),
        args_for=lambda unit: unit.child_flags(),
        halt_on_spawn_error=False,
    )

    queue.run()

    assert not queue.halted
    assert queue.pending == []
    assert queue.peak_running == 2
    assert len(popen.processes) == 2


@pytest.mark.unit
def test_empty_queue_completes_immediately(fake_popen) -> None:
    completions = []
    queue = WorkerQueue(
        _supervisor(fake_popen), [], concurrency=2, args_for=lambda unit: [], on_complete=lambda: completions.append(1)
    )

    queue.run()

    assert completions == [1]
    assert fake_popen.calls == []


@pytest.mark.unit
def test_concurrency_must_be_positive(fake_popen) -> None:
    with pytest.raises(ValueError):
        WorkerQueue(_supervisor(fake_popen), _modules(1), concurrency=0, args_for=lambda unit: [])


@pytest.mark.unit
def test_window_refills_on_whichever_child_exits_first() -> None:
    units = _modules(4)
    gates: Dict[str, threading.Event] = {unit.path: threading.Event() for unit in units}
    running_at_spawn: Dict[str, List[str]] = {}
    finished: List[str] = []
    completions: List[List[str]] = []
    supervisor: ProcessSupervisor

    def popen(command, **kwargs) -> GatedProcess:
        path = command[-1]
        running_at_spawn[path] = sorted(h.label for h in supervisor.children if h.running)
        return GatedProcess(gates[path])

    # test_0 is held until every later unit has finished
    release_after = {"test_1": "/suite/test_2.py", "test_2": "/suite/test_3.py", "test_3": "/suite/test_0.py"}

    def on_result(handle, lines, code) -> None:
        finished.append(handle.label)
        if handle.label in release_after:
            gates[release_after[handle.label]].set()

    supervisor = _supervisor(popen)
    queue = WorkerQueue(
        supervisor,
        units,
        concurrency=2,
        args_for=lambda unit: unit.child_flags(),
        on_result=on_result,
        on_complete=lambda: completions.append(list(finished)),
    )
    gates["/suite/test_1.py"].set()

    queue.run()

    assert finished == ["test_1", "test_2", "test_3", "test_0"]
    assert running_at_spawn["/suite/test_2.py"] == ["test_0", "test_2"]
    assert running_at_spawn["/suite/test_3.py"] == ["test_0", "test_3"]
    assert queue.peak_running == 2
    assert completions == [["test_1", "test_2", "test_3", "test_0"]]
    assert supervisor.running_count() == 0
