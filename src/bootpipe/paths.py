"""Centralized file names and path helpers.

A project handled by bootpipe is laid out like this (all directory names
can be overridden through composer.json ``extra``)::

    project/
    ├── composer.json         # Project overrides (extra, config)
    ├── .bootpipe.toml        # Tool settings
    ├── app/autoload.php      # Autoload entry point
    ├── bin/console           # Project console executable
    ├── var/bootstrap.php.cache
    ├── vendor/composer/installed.json
    └── web/                  # Public assets target
"""

from __future__ import annotations

import os
from pathlib import Path

COMPOSER_FILE = "composer.json"
CONFIG_FILE = ".bootpipe.toml"

# Relative to the vendor directory
INSTALLED_PACKAGES_FILE = "composer/installed.json"

BOOTSTRAP_CACHE_FILE = "bootstrap.php.cache"
AUTOLOAD_FILE = "autoload.php"
CONSOLE_FILE = "console"

# Relative to the app directory
DEFAULT_ROUTER = "config/router.php"


def get_config_path(root: Path | str = ".") -> Path:
    """Get the tool configuration file path for a project root."""
    return Path(root).resolve() / CONFIG_FILE


def get_composer_path(root: Path | str = ".", name: str = COMPOSER_FILE) -> Path:
    """Get the composer.json path for a project root."""
    return Path(root).resolve() / name


def resolve_dir(path: Path | str, root: Path | str = ".") -> Path:
    """Resolve ``path`` against ``root`` unless it is already absolute."""
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = Path(root) / candidate
    return candidate


def make_path_relative(end_path: Path | str, start_path: Path | str) -> str:
    """Return ``end_path`` relative to ``start_path`` with a trailing slash.

    Both paths are resolved to absolute paths first, so the result does not
    depend on the current working directory. Equal paths give ``"./"``.

    Args:
        end_path: Directory to point at
        start_path: Directory the result is relative to

    Returns:
        A POSIX style relative path ending with ``/``
    """
    end = Path(end_path).resolve()
    start = Path(start_path).resolve()

    try:
        relative = os.path.relpath(end, start)
    except ValueError:
        # Different drives on Windows
        return end.as_posix().rstrip("/") + "/"

    if relative == os.curdir:
        return "./"
    return Path(relative).as_posix() + "/"


__all__ = [
    "COMPOSER_FILE",
    "CONFIG_FILE",
    "INSTALLED_PACKAGES_FILE",
    "BOOTSTRAP_CACHE_FILE",
    "AUTOLOAD_FILE",
    "CONSOLE_FILE",
    "DEFAULT_ROUTER",
    "get_config_path",
    "get_composer_path",
    "resolve_dir",
    "make_path_relative",
]
