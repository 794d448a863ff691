"""Settings file loader for browserrun.

Reads YAML or JSON settings files (YAML is a superset of JSON, so one
loader serves both) and normalizes the raw mapping.
"""

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..errors import ConfigurationError

DEFAULT_SETTINGS_FILES = ("browserrun.yaml", "browserrun.yml", "browserrun.json")

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def find_settings_file(cwd: Optional[Path] = None) -> Optional[Path]:
    """Return the first default settings file present in ``cwd``."""
    cwd = Path(cwd or Path.cwd())
    for name in DEFAULT_SETTINGS_FILES:
        candidate = cwd / name
        if candidate.exists():
            return candidate
    return None


def load_settings(file_path: Union[str, Path]) -> dict:
    """Load and normalize a settings file.

    Args:
        file_path: Path to a .yaml, .yml or .json settings file.

    Returns:
        Normalized settings dictionary.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ConfigurationError(f"Settings file not found: {file_path}")

    if file_path.suffix not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(f"Expected .yaml, .yml or .json file, got: {file_path.suffix}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read settings file {file_path}: {e}") from e

    if data is None:
        raise ConfigurationError(f"Empty settings file: {file_path}")

    return parse_settings_data(data, source=str(file_path))


def parse_settings_data(data: Any, source: str = "<inline>") -> dict:
    """Normalize an already loaded settings mapping.

    - ``${VAR}`` placeholders are replaced from the process environment
    - ``src_folders`` is always a list
    - ``output`` defaults to True
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings must be a mapping, got {type(data).__name__} ({source})")

    settings = replace_env_variables(data)

    src_folders = settings.get("src_folders")
    if isinstance(src_folders, str):
        settings["src_folders"] = [src_folders]
    elif src_folders is None:
        settings["src_folders"] = []

    if settings.get("output") is None:
        settings["output"] = True

    return settings


def replace_env_variables(value: Any, environ: Optional[dict] = None) -> Any:
    """Recursively substitute ``${NAME}`` in strings; unknown names are left as-is."""
    environ = os.environ if environ is None else environ

    if isinstance(value, dict):
        return {k: replace_env_variables(v, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [replace_env_variables(v, environ) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: environ.get(m.group(1)) or m.group(0), value)
    return value
