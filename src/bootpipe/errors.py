"""Error handling framework for bootpipe."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """bootpipe CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1  # Configuration or missing tool (user fixable)
    STEP_FAILED = 2  # A lifecycle step failed
    FATAL_ERROR = 3  # Unexpected crash


class BootpipeError(RuntimeError):
    """Base exception for bootpipe errors."""

    exit_code: ExitCode = ExitCode.FATAL_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "exit_code": self.exit_code,
            **self.context,
        }


class ConfigError(BootpipeError):
    """Configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ExecutableNotFoundError(BootpipeError):
    """A required external executable could not be located."""

    exit_code = ExitCode.CONFIG_ERROR


class BuildError(BootpipeError):
    """Bootstrap artifact generation failed."""

    exit_code = ExitCode.STEP_FAILED


class SourceParseError(BuildError):
    """A PHP source file could not be parsed."""


class PipelineError(BootpipeError):
    """A lifecycle step failed and aborted the pipeline."""

    exit_code = ExitCode.STEP_FAILED

    def __init__(self, message: str, step: str | None = None, **context: Any) -> None:
        super().__init__(message, step=step, **context)
        self.step = step
