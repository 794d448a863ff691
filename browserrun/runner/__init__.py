"""Runner module - Run planning, child supervision and result collection."""

from .models import ChildHandle, ChildState, EnvironmentUnit, ModuleUnit, WorkUnit
from .orchestrator import Orchestrator
from .output import OutputAggregator
from .planner import ExecutionMode, ExecutionPlan, ExecutionPlanner
from .result_collector import ResultCollector, RunResult, UnitOutcome
from .server import ServerHandle, ServerLifecycleManager
from .suite import PytestSuiteRunner, SuiteOptions, TestRunner
from .supervisor import ProcessSupervisor, child_arguments
from .worker_queue import WorkerQueue

__all__ = [
    "ChildHandle",
    "ChildState",
    "EnvironmentUnit",
    "ModuleUnit",
    "WorkUnit",
    "Orchestrator",
    "OutputAggregator",
    "ExecutionMode",
    "ExecutionPlan",
    "ExecutionPlanner",
    "ResultCollector",
    "RunResult",
    "UnitOutcome",
    "ServerHandle",
    "ServerLifecycleManager",
    "PytestSuiteRunner",
    "SuiteOptions",
    "TestRunner",
    "ProcessSupervisor",
    "child_arguments",
    "WorkerQueue",
]
