"""Test module discovery.

Walks source folders for Python test modules and applies the filename,
group and exclude filters from the environment settings.
"""

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Union

from ..errors import DiscoveryError

LOGGER = logging.getLogger("browserrun.discovery")

MODULE_SUFFIX = ".py"
IGNORED_NAMES = {"conftest.py"}


def read_paths(source: Iterable[Union[str, Path]], settings: dict) -> list[Path]:
    """Enumerate test module paths under ``source``.

    Args:
        source: Files and/or folders to search.
        settings: Resolved environment settings; honours ``filename_filter``,
            ``skipgroup`` and ``exclude``.

    Returns:
        Sorted, de-duplicated module paths.

    Raises:
        DiscoveryError: If a source path doesn't exist, can't be read, or
            no module matches.
    """
    filename_filter = settings.get("filename_filter")
    skipgroups = set(settings.get("skipgroup") or [])
    excludes = list(settings.get("exclude") or [])

    found: dict[Path, None] = {}
    sources = [Path(s) for s in source]

    for root in sources:
        if not root.exists():
            raise DiscoveryError(f"Test source not found: {root}")

        if root.is_file():
            found[root] = None
            continue

        try:
            candidates = sorted(root.rglob(f"*{MODULE_SUFFIX}"))
        except OSError as e:
            raise DiscoveryError(f"Failed to read test source {root}: {e}") from e

        for path in candidates:
            relative = path.relative_to(root)
            if _is_ignored(relative):
                continue
            if skipgroups and any(part in skipgroups for part in relative.parts[:-1]):
                continue
            if filename_filter and not fnmatch.fnmatch(path.name, filename_filter):
                continue
            if any(fnmatch.fnmatch(relative.as_posix(), pattern) for pattern in excludes):
                continue
            found[path] = None

    if not found:
        joined = ", ".join(str(s) for s in sources) or "<no source folders>"
        raise DiscoveryError(f"No test modules found in {joined}")

    LOGGER.debug("Discovered %d test module(s)", len(found))
    return list(found)


def module_key(path: Union[str, Path], src_folders: Iterable[Union[str, Path]]) -> str:
    """Short display key for a module: its path below the source folder, without suffix."""
    path = Path(path)
    for folder in src_folders:
        try:
            relative = path.resolve().relative_to(Path(folder).resolve())
        except ValueError:
            continue
        return relative.with_suffix("").as_posix()
    return path.stem


def _is_ignored(relative: Path) -> bool:
    if relative.name in IGNORED_NAMES or relative.name.startswith("_"):
        return True
    return any(part.startswith((".", "_")) for part in relative.parts[:-1])
