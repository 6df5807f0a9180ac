"""bootpipe server-run - PHP built-in web server for development."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from bootpipe.cli import BootpipeContext


@click.command("server-run")
@click.argument("address", required=False)
@click.option(
    "--docroot",
    "-d",
    type=click.Path(path_type=Path),
    default=None,
    help="Document root (default: web-dir)",
)
@click.option("--router", "-r", default=None, help="Router script (default: <app-dir>/config/router.php)")
@click.option("--env", "-e", "environment", default=None, help="Application environment")
@click.pass_obj
def server_run(
    ctx: BootpipeContext,
    address: str | None,
    docroot: Path | None,
    router: str | None,
    environment: str | None,
) -> None:
    """Run the application with the PHP built-in web server.

    Server output is only shown with -v.

    \b
    Examples:
        bootpipe server-run                  # http://127.0.0.1:8000
        bootpipe -v server-run 0.0.0.0:8080
        bootpipe server-run --docroot=public --router=public/index.php
    """
    from bootpipe.commands.utils import exit_on_error, get_settings, load_options, make_io
    from bootpipe.paths import DEFAULT_ROUTER, resolve_dir
    from bootpipe.php import PhpExecutableFinder
    from bootpipe.server import BuiltinServer

    settings = get_settings(ctx)
    with exit_on_error(ctx):
        options = load_options(ctx)
        php = PhpExecutableFinder(settings.php_binary).find()

    root = ctx.project_root
    router = router or settings.router
    server = BuiltinServer(php)

    exit_code = server.run(
        make_io(ctx),
        address or settings.server_address,
        doc_root=resolve_dir(docroot or options.web_dir, root),
        default_router=resolve_dir(options.app_dir, root) / DEFAULT_ROUTER,
        router=resolve_dir(router, root) if router else None,
        environment=environment or settings.environment,
        verbose=ctx.verbosity == "verbose",
    )
    sys.exit(exit_code)


__all__ = ["server_run"]
