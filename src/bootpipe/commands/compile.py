"""bootpipe compile-bootstrap - build the bootstrap file for given directories."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from bootpipe.cli import BootpipeContext


def _real_dir(path: Path, message: str) -> Path:
    """Resolve an existing directory or exit with ``message``."""
    from bootpipe.errors import ExitCode
    from bootpipe.logging import print_error

    if not path.is_dir():
        print_error(message.format(path))
        sys.exit(ExitCode.CONFIG_ERROR)
    return path.resolve()


@click.command("compile-bootstrap")
@click.argument("bootstrap_dir", required=False, type=click.Path(path_type=Path))
@click.argument("autoload_dir", required=False, type=click.Path(path_type=Path))
@click.pass_obj
def compile_bootstrap(
    ctx: BootpipeContext,
    bootstrap_dir: Path | None,
    autoload_dir: Path | None,
) -> None:
    """Build the bootstrap file into BOOTSTRAP_DIR.

    AUTOLOAD_DIR is the directory holding autoload.php. Both default to the
    project's var-dir and app-dir. Unlike build-bootstrap, a missing
    directory is an error here.
    """
    from bootpipe.bootstrap import bootstrap_modules
    from bootpipe.commands.utils import create_builder, exit_on_error, load_options
    from bootpipe.logging import print_success
    from bootpipe.paths import resolve_dir

    with exit_on_error(ctx):
        options = load_options(ctx)

    # Real paths: mixing relative and absolute paths breaks the autoload reference
    bootstrap = _real_dir(
        resolve_dir(bootstrap_dir or options.var_dir, ctx.project_root),
        "Directory {} does not seem to be valid.",
    )
    autoload = _real_dir(
        resolve_dir(autoload_dir or options.app_dir, ctx.project_root),
        "Looks like you don't have a standard layout ({} is missing).",
    )

    with exit_on_error(ctx):
        builder, framework_kernel = create_builder(ctx)
        artifact = builder.build(bootstrap, autoload, bootstrap_modules(framework_kernel))

    print_success(f"Bootstrap file written to {artifact}")


__all__ = ["compile_bootstrap"]
