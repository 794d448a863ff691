"""Settings validator for browserrun.

Validates a loaded settings mapping against structural rules. Whether the
requested environments exist is checked later by the execution planner.
"""

from typing import Any

from .schema import ValidationError, ValidationResult


def validate_settings(settings: dict) -> ValidationResult:
    """Validate a normalized settings dictionary.

    Checks:
    - ``test_settings`` exists and maps environment names to mappings
    - ``src_folders`` entries are strings
    - ``test_workers`` shape and worker count
    - ``selenium`` block when the server is managed locally

    Args:
        settings: Settings as returned by ``load_settings``.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    _validate_test_settings(settings, errors, warnings)
    _validate_src_folders(settings, errors, warnings)
    _validate_test_workers(settings.get("test_workers"), "test_workers", errors)
    _validate_selenium(settings.get("selenium"), "selenium", errors, warnings)

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_test_settings(
    settings: dict,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    test_settings = settings.get("test_settings")
    if not test_settings:
        errors.append(ValidationError(
            path="test_settings",
            message="No testing environment specified.",
        ))
        return

    if not isinstance(test_settings, dict):
        errors.append(ValidationError(
            path="test_settings",
            message="'test_settings' must be a mapping of environment names to settings.",
        ))
        return

    if "default" not in test_settings:
        warnings.append(ValidationError(
            path="test_settings.default",
            message="No 'default' environment defined; environments will not inherit shared settings.",
            severity="warning",
        ))

    for name, env in test_settings.items():
        path = f"test_settings.{name}"
        if not isinstance(env, dict):
            errors.append(ValidationError(
                path=path,
                message=f"Environment '{name}' must be a mapping.",
            ))
            continue
        if "test_workers" in env:
            _validate_test_workers(env["test_workers"], f"{path}.test_workers", errors)
        if "selenium" in env and not isinstance(env["selenium"], dict):
            errors.append(ValidationError(
                path=f"{path}.selenium",
                message="'selenium' must be a mapping.",
            ))
        if "cli_args" in env and not isinstance(env["cli_args"], dict):
            errors.append(ValidationError(
                path=f"{path}.cli_args",
                message="'cli_args' must be a mapping.",
            ))


def _validate_src_folders(
    settings: dict,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    folders = settings.get("src_folders") or []
    if not folders:
        warnings.append(ValidationError(
            path="src_folders",
            message="No source folders defined; only --test runs will work.",
            severity="warning",
        ))
        return

    for i, folder in enumerate(folders):
        if not isinstance(folder, str) or not folder:
            errors.append(ValidationError(
                path=f"src_folders[{i}]",
                message="Source folder must be a non-empty string.",
            ))


def _validate_test_workers(value: Any, path: str, errors: list[ValidationError]) -> None:
    if value is None or isinstance(value, bool):
        return

    if not isinstance(value, dict):
        errors.append(ValidationError(
            path=path,
            message="'test_workers' must be true/false or a mapping with 'enabled' and 'workers'.",
        ))
        return

    workers = value.get("workers", 1)
    if workers == "auto":
        return
    if not isinstance(workers, int) or isinstance(workers, bool) or workers <= 0:
        errors.append(ValidationError(
            path=f"{path}.workers",
            message=f"Worker count must be 'auto' or a positive integer, got {workers!r}.",
        ))


def _validate_selenium(
    value: Any,
    path: str,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if value is None:
        return

    if not isinstance(value, dict):
        errors.append(ValidationError(path=path, message="'selenium' must be a mapping."))
        return

    port = value.get("port")
    if port is not None and (not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536):
        errors.append(ValidationError(
            path=f"{path}.port",
            message=f"Invalid port {port!r}.",
        ))

    cli_args = value.get("cli_args")
    if cli_args is not None and not isinstance(cli_args, dict):
        errors.append(ValidationError(
            path=f"{path}.cli_args",
            message="'cli_args' must be a mapping.",
        ))

    if value.get("start_process") and not value.get("server_path"):
        warnings.append(ValidationError(
            path=f"{path}.server_path",
            message="'start_process' is enabled but no 'server_path' is set; it may be supplied per environment.",
            severity="warning",
        ))
