from __future__ import annotations

from pathlib import Path
from typing import List

import pytest
from click.testing import CliRunner

from browserrun.cli import cli
from browserrun.errors import ConfigurationError, ServerStartError
from browserrun.runner.result_collector import ResultCollector
from browserrun.settings.schema import RunConfiguration, RunMode

SETTINGS = """
src_folders: [tests]
test_settings:
  default:
    launch_url: http://localhost
  chrome: {}
  firefox: {}
"""


class StubOrchestrator:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.configs: List[RunConfiguration] = []

    def __call__(self, config: RunConfiguration) -> "StubOrchestrator":
        self.configs.append(config)
        return self

    def run(self):
        if self.error is not None:
            raise self.error
        return self.result


def _result(mode: str, *codes: int):
    collector = ResultCollector(mode)
    for i, code in enumerate(codes):
        collector.record(f"env{i} environment", code)
    return collector.finalize()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / "browserrun.yaml").write_text(SETTINGS, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _invoke(args: List[str], orchestrator: StubOrchestrator):
    return CliRunner().invoke(cli, args, obj={"argv": args, "orchestrator_factory": orchestrator})


@pytest.mark.unit
def test_cli_runs_with_default_settings_file(workdir: Path) -> None:
    orchestrator = StubOrchestrator(_result("single", 0))

    result = _invoke(["--retries", "2"], orchestrator)

    assert result.exit_code == 0, result.output
    config = orchestrator.configs[0]
    assert config.environments == ("default",)
    assert config.retries == 2
    assert config.argv == ("--retries", "2")
    assert config.run_mode is RunMode.TOP_LEVEL


@pytest.mark.unit
def test_cli_passes_environments_and_child_flag(workdir: Path) -> None:
    orchestrator = StubOrchestrator(_result("single", 0))

    result = _invoke(["-e", "chrome", "--parallel-child", "--no-color"], orchestrator)

    assert result.exit_code == 0, result.output
    config = orchestrator.configs[0]
    assert config.environments == ("chrome",)
    assert config.is_child
    assert config.colors is False


@pytest.mark.unit
def test_cli_exit_code_follows_result_and_prints_summary(workdir: Path) -> None:
    orchestrator = StubOrchestrator(_result("multi_env", 0, 1))

    result = _invoke(["-e", "chrome,firefox", "--no-color"], orchestrator)

    assert result.exit_code == 1
    assert "PASS" in result.output
    assert "FAIL" in result.output
    assert "env1 environment" in result.output


@pytest.mark.unit
def test_cli_reports_fatal_errors_once(workdir: Path) -> None:
    orchestrator = StubOrchestrator(error=ConfigurationError("Invalid testing environment specified: safari"))

    result = _invoke(["-e", "safari"], orchestrator)

    assert result.exit_code == 1
    assert result.output.count("Invalid testing environment specified: safari") == 1


@pytest.mark.unit
def test_cli_prints_server_output_on_start_failure(workdir: Path) -> None:
    error = ServerStartError("Selenium server exited with code 1 before becoming ready.", output="Address already in use")
    result = _invoke([], StubOrchestrator(error=error))

    assert result.exit_code == 1
    assert "Address already in use" in result.output


@pytest.mark.unit
def test_cli_interrupt_exits_130(workdir: Path) -> None:
    result = _invoke([], StubOrchestrator(error=KeyboardInterrupt()))

    assert result.exit_code == 130


@pytest.mark.unit
def test_cli_without_settings_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    result = _invoke([], StubOrchestrator(_result("single", 0)))

    assert result.exit_code == 1
    assert "No settings file found" in result.output


@pytest.mark.unit
def test_cli_rejects_invalid_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "custom.yml"
    config.write_text("src_folders: [tests]\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    orchestrator = StubOrchestrator(_result("single", 0))

    result = _invoke(["-c", str(config)], orchestrator)

    assert result.exit_code == 1
    assert "No testing environment specified." in result.output
    assert orchestrator.configs == []


@pytest.mark.unit
def test_cli_rejects_negative_retries(workdir: Path) -> None:
    result = _invoke(["--retries", "-1"], StubOrchestrator(_result("single", 0)))

    assert result.exit_code == 2
