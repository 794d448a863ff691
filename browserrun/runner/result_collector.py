"""Result collector for orchestrated runs.

Merges per-unit outcomes into one exit status.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import SpawnError
from .models import SPAWN_FAILURE_EXIT_CODE


@dataclass
class UnitOutcome:
    """Outcome of one dispatched work unit."""
    label: str
    exit_code: int
    line_count: int = 0
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


@dataclass
class RunResult:
    """Aggregated result of a run."""
    mode: str
    outcomes: list[UnitOutcome] = field(default_factory=list)
    outputs: dict[str, list[str]] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    infra_failure: bool = False
    duration_ms: int = 0

    @property
    def exit_code(self) -> int:
        """0 when every dispatched unit exited 0, else 1."""
        if self.infra_failure or self.skipped:
            return 1
        return 0 if all(o.passed for o in self.outcomes) else 1

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.passed)

    @property
    def total_count(self) -> int:
        return len(self.outcomes)

    def outcome(self, label: str) -> Optional[UnitOutcome]:
        for o in self.outcomes:
            if o.label == label:
                return o
        return None


class ResultCollector:
    """Collects unit outcomes as children finish."""

    def __init__(self, mode: str):
        self.result = RunResult(mode=mode)

    def record(self, label: str, exit_code: int, output: Iterable[str] = ()) -> UnitOutcome:
        """Record a finished unit; a nonzero code fails the run."""
        outcome = UnitOutcome(label=label, exit_code=exit_code, line_count=len(list(output)))
        self.result.outcomes.append(outcome)
        return outcome

    def record_spawn_failure(self, error: SpawnError) -> UnitOutcome:
        outcome = UnitOutcome(
            label=error.label,
            exit_code=SPAWN_FAILURE_EXIT_CODE,
            error=str(error),
        )
        self.result.outcomes.append(outcome)
        self.result.errors.append(str(error))
        self.result.infra_failure = True
        return outcome

    def record_skipped(self, labels: Iterable[str]) -> None:
        self.result.skipped.extend(labels)

    def finalize(self, outputs: Optional[dict[str, list[str]]] = None, duration_ms: int = 0) -> RunResult:
        if outputs is not None:
            self.result.outputs = outputs
        self.result.duration_ms = duration_ms
        return self.result
