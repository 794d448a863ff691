"""Execution orchestrator.

Coordinates the full run:
1. Plan the execution mode (validating environments)
2. Start the managed WebDriver server, if any
3. Run the suite directly (SINGLE) or dispatch work units to children
4. Collect output and outcomes
5. Stop the server
"""

import functools
import logging
import random
import subprocess
import sys
import time
from typing import Any, Callable, Optional

import click

from ..discovery import module_key
from ..reporting import JsonReporter
from ..settings.globals import load_globals
from ..settings.schema import RunConfiguration
from .models import ChildHandle, EnvironmentUnit, ModuleUnit, WorkUnit
from .output import OutputAggregator
from .planner import ExecutionMode, ExecutionPlan, ExecutionPlanner
from .result_collector import ResultCollector, RunResult
from .server import ServerLifecycleManager
from .suite import PytestSuiteRunner, SuiteOptions, TestRunner
from .supervisor import ProcessSupervisor, child_arguments
from .worker_queue import WorkerQueue

LOGGER = logging.getLogger("browserrun.orchestrator")


class Orchestrator:
    """Runs a suite in SINGLE, MULTI_ENV or WORKER_POOL mode.

    A SINGLE-mode orchestrator is also the unit of work of the parallel
    modes: every child process runs ``browserrun`` again with
    ``--parallel-child``, which plans to SINGLE.
    """

    def __init__(
        self,
        config: RunConfiguration,
        runner: Optional[TestRunner] = None,
        planner: Optional[ExecutionPlanner] = None,
        server_factory: Optional[Callable[[RunConfiguration], ServerLifecycleManager]] = None,
        popen: Callable[..., Any] = subprocess.Popen,
        executable: str = sys.executable,
        echo: Callable[[str], None] = click.echo,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Resolved run configuration.
            runner: Suite runner; defaults to the pytest runner.
            planner: Execution planner; defaults to one using the host core count.
            server_factory: Builds the server lifecycle manager for a configuration.
            popen: Process factory used for child processes.
            executable: Python interpreter for child processes.
            echo: Output sink for child output.
            rng: Random source for the color palette.
        """
        self.config = config
        self.runner = runner or PytestSuiteRunner()
        self.planner = planner or ExecutionPlanner()
        self._server_factory = server_factory or (lambda cfg: ServerLifecycleManager(cfg.selenium))
        self._popen = popen
        self._executable = executable
        self._echo = echo
        self._rng = rng
        self.plan: Optional[ExecutionPlan] = None

    def run(self) -> RunResult:
        """Plan and execute the run.

        Raises:
            ConfigurationError: Unknown environment, before anything starts.
            ServerStartError: The managed server failed; no unit was dispatched.
            DiscoveryError: Module enumeration failed; the server is stopped.
        """
        self.plan = self.planner.plan(self.config)
        LOGGER.debug("Execution mode: %s", self.plan.mode.value)

        if self.plan.mode is ExecutionMode.SINGLE:
            return self.run_single(self.plan.config)
        return self._run_parallel(self.plan)

    def run_single(self, config: Optional[RunConfiguration] = None) -> RunResult:
        """Execute the suite in this process, without children."""
        config = config or self.config
        env = config.environments[0]
        collector = ResultCollector(ExecutionMode.SINGLE.value)
        started = time.time()

        hooks = load_globals(config.globals_path, env)
        settings = dict(config.test_settings)
        settings["globals"] = hooks.values
        server = self._server_factory(config)

        hooks.before(settings)
        server.start()
        try:
            exit_code = self.runner.run(config.test_source(), settings, self._suite_options(config))
        finally:
            server.stop()
        hooks.after(settings)

        label = config.single_test_path if config.single_test_run else EnvironmentUnit(env).label
        collector.record(label, exit_code)
        return collector.finalize(duration_ms=_elapsed_ms(started))

    def _run_parallel(self, plan: ExecutionPlan) -> RunResult:
        config = plan.config
        collector = ResultCollector(plan.mode.value)
        output = OutputAggregator(live=config.live_output, colors=config.colors, echo=self._echo)
        supervisor = ProcessSupervisor(output, popen=self._popen, executable=self._executable, rng=self._rng)
        server = self._server_factory(config)
        started = time.time()

        server.start()
        try:
            if plan.mode is ExecutionMode.MULTI_ENV:
                units: list[WorkUnit] = [EnvironmentUnit(env) for env in config.environments]
                # One child per environment, no cap
                concurrency, halt_on_spawn_error = len(units), False
            else:
                modules = self.runner.read_paths(config.test_source(), config.test_settings)
                units = [ModuleUnit(str(path), module_key(path, config.source_folders)) for path in modules]
                concurrency, halt_on_spawn_error = plan.worker_count, True
                LOGGER.info("Running %d test module(s) with %d worker(s)", len(units), concurrency)

            def on_result(handle: ChildHandle, lines: list[str], exit_code: int) -> None:
                collector.record(handle.label, exit_code, lines)
                if exit_code != 0:
                    LOGGER.debug("%s failed with exit code %s", handle.label, exit_code)

            queue = WorkerQueue(
                supervisor,
                units,
                concurrency,
                args_for=functools.partial(child_arguments, config.argv),
                on_result=on_result,
                on_complete=output.flush,
                halt_on_spawn_error=halt_on_spawn_error,
            )
            queue.run()

            for error in queue.spawn_errors:
                collector.record_spawn_failure(error)
            collector.record_skipped(unit.label for unit in queue.pending)
        finally:
            server.stop()

        result = collector.finalize(output.outputs, duration_ms=_elapsed_ms(started))
        if config.save_report:
            self._save_report(result, config)
        return result

    def _suite_options(self, config: RunConfiguration) -> SuiteOptions:
        return SuiteOptions(
            output_folder=config.output_folder,
            src_folders=config.source_folders,
            live_output=config.live_output,
            testcase=config.testcase,
            retries=config.retries,
            start_session=config.selenium.start_session,
        )

    def _save_report(self, result: RunResult, config: RunConfiguration) -> None:
        reporter = JsonReporter()
        report = reporter.generate(result, environments=list(config.environments))
        try:
            path = reporter.save(report, config.output_folder or ".")
        except OSError as e:
            LOGGER.warning("Failed to save report: %s", e)
            return
        LOGGER.info("Report saved: %s", path)


def _elapsed_ms(started: float) -> int:
    return int((time.time() - started) * 1000)
