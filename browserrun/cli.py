"""CLI entry point for browserrun.

Usage:
    browserrun [options]
    python -m browserrun [options]
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .errors import BrowserRunError, ConfigurationError, ServerStartError
from .log import configure_logging
from .runner.orchestrator import Orchestrator
from .runner.planner import ExecutionMode
from .runner.result_collector import RunResult
from .settings import find_settings_file, load_settings, resolve_configuration, validate_settings

LOGGER = logging.getLogger("browserrun.cli")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--config", "config_path", type=click.Path(dir_okay=False), help="Settings file (YAML or JSON).")
@click.option("-e", "--env", default="default", show_default=True, help="Environment(s) to run, comma separated.")
@click.option("-t", "--test", help="Run a single test module.")
@click.option("--testcase", help="Run a single test case (only with --test).")
@click.option("-g", "--group", help="Run a group of tests (a subfolder of the source folder).")
@click.option("-f", "--filter", "filename_filter", help="Glob applied to test module file names.")
@click.option("-a", "--tag", help="Run only tests with these markers, comma separated.")
@click.option("--skiptags", help="Skip tests with these markers, comma separated.")
@click.option("-s", "--skipgroup", help="Skip these groups, comma separated.")
@click.option("-o", "--output", type=click.Path(file_okay=False), help="Folder for junit reports.")
@click.option("--retries", type=click.IntRange(min=0), default=0, show_default=True, help="Retry failing suites.")
@click.option("--save-report", is_flag=True, help="Write browserrun-report.json after a parallel run.")
@click.option("--no-color", is_flag=True, help="Disable colored output.")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
@click.option("--parallel-child", is_flag=True, hidden=True)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool, **options) -> None:
    """Run browser tests, optionally across environments or worker processes."""
    obj = ctx.obj or {}
    configure_logging(verbose=verbose, colors=not options["no_color"])

    try:
        settings = _load(config_path)
        config = resolve_configuration(settings, _resolver_options(options, obj))
        orchestrator = obj.get("orchestrator_factory", Orchestrator)(config)
        result = orchestrator.run()
    except KeyboardInterrupt:
        output_error("Run interrupted by user")
        ctx.exit(130)
    except BrowserRunError as e:
        LOGGER.debug("Run aborted", exc_info=True)
        output_error(str(e), output=e.output if isinstance(e, ServerStartError) else "")
        ctx.exit(1)

    if result.mode != ExecutionMode.SINGLE.value:
        print_summary(result)
    ctx.exit(result.exit_code)


def main(argv: Optional[list[str]] = None) -> None:
    """Console script entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    cli.main(args=argv, prog_name="browserrun", obj={"argv": argv})


def _load(config_path: Optional[str]) -> dict:
    path = Path(config_path) if config_path else find_settings_file()
    if path is None:
        raise ConfigurationError("No settings file found (browserrun.yaml, browserrun.yml or browserrun.json).")
    LOGGER.debug("Using settings file %s", path)

    settings = load_settings(path)
    validation = validate_settings(settings)
    for warning in validation.warnings:
        LOGGER.warning("%s: %s", warning.path, warning.message)
    if not validation.valid:
        errors = "; ".join(f"{e.path}: {e.message}" for e in validation.errors)
        raise ConfigurationError(f"Invalid settings: {errors}")
    return settings


def _resolver_options(options: dict, obj: dict) -> dict:
    resolved = dict(options)
    resolved["filter"] = resolved.pop("filename_filter")
    resolved["argv"] = obj.get("argv", sys.argv[1:])
    return resolved


def output_error(message: str, output: str = "") -> None:
    """Report a fatal error once on stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)
    if output:
        click.echo(output.rstrip(), err=True)


def print_summary(result: RunResult) -> None:
    """Print per-unit outcomes of a parallel run."""
    click.echo()
    for outcome in result.outcomes:
        status = click.style("PASS", fg="green") if outcome.passed else click.style("FAIL", fg="red")
        click.echo(f"  {status}  {outcome.label} (exit code {outcome.exit_code})")
    for label in result.skipped:
        click.echo(f"  {click.style('SKIP', fg='yellow')}  {label}")

    failed = result.failed_count + len(result.skipped)
    color = "green" if result.success else "red"
    click.secho(
        f"{result.total_count - result.failed_count} passed, {failed} failed or skipped in {result.duration_ms / 1000:.1f}s",
        fg=color,
    )


if __name__ == "__main__":
    main()
