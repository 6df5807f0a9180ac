"""bootpipe CLI - build-lifecycle steps for PHP project skeletons."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

# Load .env file before any other imports that might use env vars
load_dotenv()

import click  # noqa: E402

from bootpipe import __version__  # noqa: E402
from bootpipe.commands.lazy import LazyGroup  # noqa: E402
from bootpipe.logging import VerbosityLevel  # noqa: E402

if TYPE_CHECKING:
    from bootpipe.config import BootpipeSettings


class BootpipeContext:
    """Shared context for CLI commands."""

    def __init__(self) -> None:
        self.settings: BootpipeSettings | None = None
        self.verbosity: VerbosityLevel = "normal"
        self.debug: bool = False
        self.project_root: Path = Path.cwd()
        self.no_color: bool = False


pass_context = click.make_pass_decorator(BootpipeContext, ensure=True)


# Define lazy subcommands: name -> (module_path, attribute_name)
LAZY_COMMANDS: dict[str, tuple[str, str]] = {
    # Lifecycle steps
    "build-bootstrap": ("bootpipe.commands.lifecycle", "build_bootstrap"),
    "clear-cache": ("bootpipe.commands.lifecycle", "clear_cache"),
    "install-assets": ("bootpipe.commands.lifecycle", "install_assets"),
    "run": ("bootpipe.commands.lifecycle", "run"),
    # Standalone tools
    "compile-bootstrap": ("bootpipe.commands.compile", "compile_bootstrap"),
    "server-run": ("bootpipe.commands.server", "server_run"),
    "init": ("bootpipe.commands.init_cmd", "init"),
}

HIDDEN_COMMANDS: dict[str, tuple[str, str]] = {
    # Console-style alias
    "server:run": ("bootpipe.commands.server", "server_run"),
}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS, hidden_subcommands=HIDDEN_COMMANDS)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output")
@click.option("--debug", is_flag=True, help="Show full tracebacks on errors")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--project-dir",
    "-C",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory)",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.version_option(version=__version__, prog_name="bootpipe")
@pass_context
def cli(
    ctx: BootpipeContext,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config: Path | None,
    project_dir: Path | None,
    no_color: bool,
) -> None:
    """bootpipe - build lifecycle for PHP project skeletons.

    \b
    Lifecycle steps:
      build-bootstrap    Regenerate var/bootstrap.php.cache
      clear-cache        Run console cache:clear
      install-assets     Run console assets:install
      run                Run several steps in order (Composer hooks)

    \b
    Tools:
      compile-bootstrap  Build the bootstrap file for explicit directories
      server-run         Run the PHP built-in web server
      init               Create a .bootpipe.toml

    \b
    Composer hook example:
      "post-install-cmd": ["bootpipe run build-bootstrap clear-cache install-assets"]

    Use 'bootpipe <command> --help' for details.
    """
    import sys

    # Lazy import for faster startup
    from bootpipe.config import BootpipeSettings
    from bootpipe.errors import ConfigError
    from bootpipe.logging import print_error, setup_logging

    ctx.debug = debug
    ctx.no_color = no_color

    if quiet:
        ctx.verbosity = "quiet"
    elif verbose:
        ctx.verbosity = "verbose"
    else:
        ctx.verbosity = "normal"

    setup_logging(ctx.verbosity)

    ctx.project_root = (project_dir or Path.cwd()).resolve()

    try:
        ctx.settings = BootpipeSettings.load(config, root=ctx.project_root)
    except ConfigError as e:
        print_error(f"Failed to load configuration: {e.message}")
        sys.exit(e.exit_code)


def main() -> None:
    """Entry point for the CLI."""
    import sys

    debug_mode = "--debug" in sys.argv

    try:
        cli()
    except click.ClickException:
        raise
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        from bootpipe.errors import BootpipeError, ExitCode
        from bootpipe.logging import print_error, print_info

        if isinstance(e, BootpipeError):
            print_error(e.message)
            exit_code = e.exit_code
        else:
            print_error(f"Error: {e}")
            exit_code = ExitCode.FATAL_ERROR

        if debug_mode:
            print_info("")
            print_info("Full traceback (--debug mode):")
            import traceback

            traceback.print_exc()
        else:
            print_info("")
            print_info("Run with --debug for full traceback.")

        sys.exit(exit_code)


if __name__ == "__main__":
    main()
