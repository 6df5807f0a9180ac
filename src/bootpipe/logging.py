"""Logging configuration and console I/O for bootpipe."""

from __future__ import annotations

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Console instances for stdout/stderr
console = Console()
err_console = Console(stderr=True)

VerbosityLevel = Literal["quiet", "normal", "verbose"]


def setup_logging(verbosity: VerbosityLevel = "normal") -> logging.Logger:
    """Configure logging based on verbosity level."""
    logger = logging.getLogger("bootpipe")

    # Clear existing handlers
    logger.handlers.clear()

    level_map = {
        "quiet": logging.ERROR,
        "normal": logging.INFO,
        "verbose": logging.DEBUG,
    }
    logger.setLevel(level_map[verbosity])

    handler = RichHandler(
        console=err_console,
        show_time=verbosity == "verbose",
        show_path=verbosity == "verbose",
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    return logger


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message to stderr."""
    err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message to stdout."""
    console.print(f"[green]{escape(message)}[/green]")


def print_info(message: str) -> None:
    """Print an info message to stdout."""
    console.print(escape(message))


class ConsoleIO:
    """I/O sink handed to the lifecycle pipeline and the dev server.

    Plain lines and raw subprocess chunks go to ``out``; error lines go to
    ``err`` in red. ``is_decorated`` tells callers whether the child
    processes should be asked for ANSI output.
    """

    def __init__(
        self,
        out: Console | None = None,
        err: Console | None = None,
        decorated: bool | None = None,
    ) -> None:
        self.out = out or console
        self.err = err or err_console
        self._decorated = decorated

    def write(self, message: str, newline: bool = True) -> None:
        """Write a message verbatim, optionally without a trailing newline."""
        self.out.print(
            message,
            end="\n" if newline else "",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )

    def write_error(self, message: str) -> None:
        """Write an error line."""
        self.err.print(f"[red]{escape(message)}[/red]", soft_wrap=True)

    def is_decorated(self) -> bool:
        if self._decorated is not None:
            return self._decorated
        return self.out.is_terminal and not self.out.no_color


__all__ = [
    "console",
    "err_console",
    "VerbosityLevel",
    "setup_logging",
    "print_error",
    "print_warning",
    "print_success",
    "print_info",
    "ConsoleIO",
]
