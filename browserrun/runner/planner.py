"""Execution planner - picks how a run is carried out."""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..errors import ConfigurationError
from ..settings.schema import RunConfiguration, WorkerPolicyKind

LOGGER = logging.getLogger("browserrun.planner")

TESTCASE_WITHOUT_TEST_WARNING = "Option --testcase used without --test is ignored."


class ExecutionMode(str, Enum):
    """How the suite is executed."""
    SINGLE = "single"
    MULTI_ENV = "multi_env"
    WORKER_POOL = "worker_pool"


@dataclass(frozen=True)
class ExecutionPlan:
    """The planner's decision for one invocation."""
    mode: ExecutionMode
    config: RunConfiguration
    worker_count: int = 1
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def parallel(self) -> bool:
        return self.mode is not ExecutionMode.SINGLE


class ExecutionPlanner:
    """Chooses SINGLE, MULTI_ENV or WORKER_POOL from a run configuration.

    Validation happens here, before any process or server is touched.
    """

    def __init__(self, cpu_count: Optional[Callable[[], Optional[int]]] = None):
        self._cpu_count = cpu_count or os.cpu_count

    def plan(self, config: RunConfiguration) -> ExecutionPlan:
        """Decide the execution mode.

        Raises:
            ConfigurationError: If an environment id isn't defined in the settings.
        """
        unknown = [env for env in config.environments if env not in config.known_environments]
        if unknown:
            raise ConfigurationError(f"Invalid testing environment specified: {unknown[0]}")

        warnings: list[str] = []
        if config.testcase and not config.single_test_run:
            warnings.append(TESTCASE_WITHOUT_TEST_WARNING)
            LOGGER.warning(TESTCASE_WITHOUT_TEST_WARNING)
            config = dataclasses.replace(config, testcase=None)

        if config.single_test_run or config.is_child:
            return ExecutionPlan(ExecutionMode.SINGLE, config, warnings=tuple(warnings))

        if config.multiple_environments:
            return ExecutionPlan(
                ExecutionMode.MULTI_ENV,
                config,
                worker_count=len(config.environments),
                warnings=tuple(warnings),
            )

        if config.worker_policy.enabled:
            return ExecutionPlan(
                ExecutionMode.WORKER_POOL,
                config,
                worker_count=self.worker_count(config),
                warnings=tuple(warnings),
            )

        return ExecutionPlan(ExecutionMode.SINGLE, config, warnings=tuple(warnings))

    def worker_count(self, config: RunConfiguration) -> int:
        """W: the explicit count, the host core count for ``auto``, else 1."""
        policy = config.worker_policy
        if policy.kind is WorkerPolicyKind.AUTO:
            return max(1, self._cpu_count() or 1)
        if policy.kind is WorkerPolicyKind.FIXED:
            return max(1, policy.count)
        return 1
