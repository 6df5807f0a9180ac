"""Locate the PHP interpreter."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Mapping
from pathlib import Path

from bootpipe.errors import ExecutableNotFoundError

logger = logging.getLogger(__name__)

# Checked in order before falling back to PATH
PHP_ENV_VARIABLES = ("PHP_BINARY", "PHP_PATH", "PHP_PEAR_PHP_BIN")

NOT_FOUND_MESSAGE = (
    "The php executable could not be found, add it to your PATH environment "
    "variable and try again"
)


def _is_executable(path: str) -> bool:
    return Path(path).is_file() and os.access(path, os.X_OK)


class PhpExecutableFinder:
    """Find the PHP executable once, before any subprocess is attempted."""

    def __init__(
        self,
        explicit: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.explicit = explicit
        self.environ = os.environ if environ is None else environ

    def find(self) -> str:
        """Return the path of the PHP executable.

        Raises:
            ExecutableNotFoundError: If no usable executable exists
        """
        if self.explicit:
            located = self.explicit if _is_executable(self.explicit) else shutil.which(self.explicit)
            if located:
                return located
            raise ExecutableNotFoundError(NOT_FOUND_MESSAGE, configured=self.explicit)

        for variable in PHP_ENV_VARIABLES:
            candidate = self.environ.get(variable)
            if candidate and _is_executable(candidate):
                logger.debug(f"Using PHP from ${variable}: {candidate}")
                return candidate

        located = shutil.which("php", path=self.environ.get("PATH"))
        if located:
            return located

        raise ExecutableNotFoundError(NOT_FOUND_MESSAGE)


__all__ = ["PHP_ENV_VARIABLES", "NOT_FOUND_MESSAGE", "PhpExecutableFinder"]
