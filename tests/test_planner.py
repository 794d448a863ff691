from __future__ import annotations

import pytest

from browserrun.errors import ConfigurationError
from browserrun.runner.planner import TESTCASE_WITHOUT_TEST_WARNING, ExecutionMode, ExecutionPlanner
from browserrun.settings.schema import RunMode, WorkerPolicy, WorkerPolicyKind


def _planner(cores: int = 8) -> ExecutionPlanner:
    return ExecutionPlanner(cpu_count=lambda: cores)


@pytest.mark.unit
def test_plain_run_is_single(make_config) -> None:
    plan = _planner().plan(make_config())
    assert plan.mode is ExecutionMode.SINGLE
    assert not plan.parallel


@pytest.mark.unit
def test_multiple_environments_run_one_child_each(make_config) -> None:
    plan = _planner().plan(make_config(environments=("chrome", "firefox", "safari")))
    assert plan.mode is ExecutionMode.MULTI_ENV
    assert plan.worker_count == 3


@pytest.mark.unit
def test_multiple_environments_take_precedence_over_workers(make_config) -> None:
    config = make_config(environments=("chrome", "firefox"), worker_policy=WorkerPolicy(WorkerPolicyKind.FIXED, 4))
    assert _planner().plan(config).mode is ExecutionMode.MULTI_ENV


@pytest.mark.unit
def test_worker_pool_counts(make_config) -> None:
    auto = make_config(worker_policy=WorkerPolicy(WorkerPolicyKind.AUTO))
    fixed = make_config(worker_policy=WorkerPolicy(WorkerPolicyKind.FIXED, 3))

    assert _planner(cores=6).plan(auto).worker_count == 6
    plan = _planner().plan(fixed)
    assert plan.mode is ExecutionMode.WORKER_POOL
    assert plan.worker_count == 3


@pytest.mark.unit
def test_auto_workers_fall_back_to_one_when_core_count_unknown(make_config) -> None:
    planner = ExecutionPlanner(cpu_count=lambda: None)
    config = make_config(worker_policy=WorkerPolicy(WorkerPolicyKind.AUTO))
    assert planner.plan(config).worker_count == 1


@pytest.mark.unit
def test_single_test_and_children_never_fan_out(make_config) -> None:
    policy = WorkerPolicy(WorkerPolicyKind.FIXED, 4)

    single = make_config(worker_policy=policy, single_test_path="/t/test_a.py")
    child = make_config(worker_policy=policy, run_mode=RunMode.CHILD)

    assert _planner().plan(single).mode is ExecutionMode.SINGLE
    assert _planner().plan(child).mode is ExecutionMode.SINGLE


@pytest.mark.unit
def test_unknown_environment_is_rejected(make_config) -> None:
    config = make_config(environments=("chrome", "nope"), known_environments=frozenset({"default", "chrome"}))

    with pytest.raises(ConfigurationError, match="Invalid testing environment specified: nope"):
        _planner().plan(config)


@pytest.mark.unit
def test_testcase_without_test_is_dropped_with_warning(make_config) -> None:
    plan = _planner().plan(make_config(testcase="test_login"))

    assert plan.warnings == (TESTCASE_WITHOUT_TEST_WARNING,)
    assert plan.config.testcase is None


@pytest.mark.unit
def test_testcase_with_test_is_kept(make_config) -> None:
    plan = _planner().plan(make_config(testcase="test_login", single_test_path="/t/test_a.py"))

    assert plan.warnings == ()
    assert plan.config.testcase == "test_login"
