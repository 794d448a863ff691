"""Resolve loaded settings and command line options into a RunConfiguration."""

import logging
from pathlib import Path
from typing import Any, Optional

from ..errors import ConfigurationError
from .schema import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_SELENIUM_HOST,
    DEFAULT_SELENIUM_PORT,
    DEPRECATED_DRIVER_OPTIONS,
    RunConfiguration,
    RunMode,
    SeleniumSettings,
    WorkerPolicy,
)

LOGGER = logging.getLogger("browserrun.settings")


def split_environments(value: Optional[str]) -> tuple[str, ...]:
    """Split a comma separated ``--env`` value, defaulting to ``default``."""
    envs = [part.strip() for part in (value or "").split(",") if part.strip()]
    # Repeated names would spawn duplicate children
    return tuple(dict.fromkeys(envs)) or (DEFAULT_ENVIRONMENT,)


def environment_settings(settings: dict, env: str) -> dict:
    """Settings for ``env`` with unset keys inherited from the default environment."""
    all_envs = settings.get("test_settings") or {}
    resolved = dict(all_envs.get(env) or {})
    if env != DEFAULT_ENVIRONMENT:
        for key, value in (all_envs.get(DEFAULT_ENVIRONMENT) or {}).items():
            resolved.setdefault(key, value)
    return resolved


def resolve_configuration(settings: dict, options: Optional[dict] = None) -> RunConfiguration:
    """Build the immutable run configuration.

    Args:
        settings: Normalized settings (see ``load_settings``).
        options: Command line options; keys mirror the CLI flags
            (``env``, ``test``, ``testcase``, ``group``, ``filter``, ``tag``,
            ``skiptags``, ``skipgroup``, ``output``, ``retries``,
            ``no_color``, ``save_report``, ``parallel_child``, ``argv``).

    Returns:
        RunConfiguration ready for the execution planner.

    Raises:
        ConfigurationError: If the single test file can't be read.
    """
    options = options or {}
    environments = split_environments(options.get("env"))
    known = frozenset((settings.get("test_settings") or {}).keys())
    run_mode = RunMode.CHILD if options.get("parallel_child") else RunMode.TOP_LEVEL

    # With several environments each child resolves its own settings, unless
    # --test pins the run to the first one in this process
    pinned = len(environments) == 1 or bool(options.get("test"))
    single_env = environments[0] if pinned and environments[0] in known else None
    test_settings = environment_settings(settings, single_env) if single_env else {}
    _apply_filters(test_settings, options)

    workers_setting = test_settings.get("test_workers", settings.get("test_workers"))

    return RunConfiguration(
        environments=environments,
        known_environments=known,
        worker_policy=WorkerPolicy.from_setting(workers_setting),
        single_test_path=_resolve_test_path(options.get("test")),
        testcase=options.get("testcase"),
        group=options.get("group"),
        source_folders=tuple(settings.get("src_folders") or ()),
        live_output=bool(settings.get("live_output", False)),
        retries=int(options.get("retries") or 0),
        selenium=_resolve_selenium(settings, test_settings, run_mode),
        run_mode=run_mode,
        output_folder=_resolve_output_folder(settings, options),
        test_settings=test_settings,
        globals_path=settings.get("globals_path"),
        colors=not (options.get("no_color") or settings.get("disable_colors") or test_settings.get("disable_colors")),
        save_report=bool(options.get("save_report")),
        argv=tuple(options.get("argv") or ()),
    )


def merge_cli_args(base: Optional[dict], env_settings: dict) -> dict:
    """Merge environment ``cli_args`` over the base selenium ``cli_args``, key by key."""
    merged = dict(base or {})
    env_args = env_settings.get("cli_args")
    if isinstance(env_args, dict):
        merged.update(env_args)

    for option, cli_name in DEPRECATED_DRIVER_OPTIONS.items():
        if env_settings.get(option):
            LOGGER.warning(
                "DEPRECATION NOTICE: Property %s is deprecated. Use the 'cli_args' mapping on the "
                "'selenium' settings to define '%s'.",
                option,
                cli_name,
            )
            merged[cli_name] = env_settings[option]
    return merged


def _resolve_selenium(settings: dict, test_settings: dict, run_mode: RunMode) -> SeleniumSettings:
    selenium = dict(settings.get("selenium") or {})
    if isinstance(test_settings.get("selenium"), dict):
        selenium.update(test_settings["selenium"])

    start_session = selenium.get("start_session")
    return SeleniumSettings(
        # Children never manage the server; the parent owns it for the whole run
        managed=bool(selenium.get("start_process")) and run_mode is RunMode.TOP_LEVEL,
        server_path=selenium.get("server_path"),
        host=selenium.get("host", DEFAULT_SELENIUM_HOST),
        port=int(selenium.get("port", DEFAULT_SELENIUM_PORT)),
        cli_args=merge_cli_args(selenium.get("cli_args"), test_settings),
        log_path=selenium.get("log_path") or None,
        start_session=start_session is None or bool(start_session),
        start_timeout=float(selenium.get("start_timeout", 30.0)),
    )


def _resolve_output_folder(settings: dict, options: dict) -> Optional[str]:
    if settings.get("output_folder") is False:
        return None
    return options.get("output") or settings.get("output_folder") or None


def _resolve_test_path(test: Optional[str]) -> Optional[str]:
    if not test:
        return None

    path = Path(test)
    if not path.is_absolute():
        path = Path.cwd() / path
    if not path.suffix:
        path = path.with_suffix(".py")
    if not path.is_file():
        raise ConfigurationError(f"There was a problem reading the test file: {path}")
    return str(path)


def _apply_filters(test_settings: dict, options: dict) -> None:
    if options.get("filter"):
        test_settings["filename_filter"] = options["filter"]
    if options.get("tag"):
        test_settings["tag_filter"] = _split(options["tag"])
    if options.get("skiptags"):
        test_settings["skiptags"] = _split(options["skiptags"])
    if options.get("skipgroup"):
        test_settings["skipgroup"] = _split(options["skipgroup"])


def _split(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [part.strip() for part in str(value).split(",") if part.strip()]
