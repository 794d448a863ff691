"""Settings module - settings file loading and run configuration."""

from .schema import (
    RunConfiguration,
    RunMode,
    SeleniumSettings,
    ValidationError,
    ValidationResult,
    WorkerPolicy,
    WorkerPolicyKind,
)
from .globals import GlobalHooks, load_globals
from .parser import find_settings_file, load_settings, parse_settings_data
from .resolver import environment_settings, resolve_configuration, split_environments
from .validator import validate_settings

__all__ = [
    "GlobalHooks",
    "RunConfiguration",
    "RunMode",
    "SeleniumSettings",
    "ValidationError",
    "ValidationResult",
    "WorkerPolicy",
    "WorkerPolicyKind",
    "environment_settings",
    "find_settings_file",
    "load_globals",
    "load_settings",
    "parse_settings_data",
    "resolve_configuration",
    "split_environments",
    "validate_settings",
]
