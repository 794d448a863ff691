"""External globals file with optional before/after suite hooks."""

import importlib.util
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from ..errors import ConfigurationError


def _noop(settings: dict) -> None:
    return None


@dataclass
class GlobalHooks:
    """Hooks and values loaded from a ``globals_path`` module."""
    values: dict[str, Any] = field(default_factory=dict)
    before: Callable[[dict], None] = _noop
    after: Callable[[dict], None] = _noop


def load_globals(path: Optional[str], env: Optional[str] = None) -> GlobalHooks:
    """Load ``before``/``after`` hooks and ``GLOBALS`` from a Python file.

    A mapping stored under the environment name inside ``GLOBALS``
    overrides the shared values for that environment.

    Raises:
        ConfigurationError: If the file is missing or fails to import.
    """
    if not path:
        return GlobalHooks()

    full_path = Path(path).resolve()
    if not full_path.exists():
        raise ConfigurationError(
            f"Failed to load external global file: could not locate {path}."
        )

    spec = importlib.util.spec_from_file_location("browserrun_globals", full_path)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Failed to load external global file: {path} is not a Python module.")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigurationError(f"Failed to load external global file: {e}") from e

    values = dict(getattr(module, "GLOBALS", {}) or {})
    if env and isinstance(values.get(env), dict):
        values.update(values[env])

    hooks = GlobalHooks(values=values)
    if callable(getattr(module, "before", None)):
        hooks.before = module.before
    if callable(getattr(module, "after", None)):
        hooks.after = module.after
    return hooks
