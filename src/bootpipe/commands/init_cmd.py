"""bootpipe init - Initialize .bootpipe.toml configuration."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from bootpipe.cli import BootpipeContext


@click.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing .bootpipe.toml")
@click.pass_obj
def init(ctx: BootpipeContext, force: bool) -> None:
    """Initialize a new .bootpipe.toml configuration file.

    Creates a configuration file with defaults in the project root.
    """
    from bootpipe.config import get_default_config_toml
    from bootpipe.errors import ExitCode
    from bootpipe.logging import print_error, print_info, print_success, print_warning
    from bootpipe.paths import get_config_path

    config_path = get_config_path(ctx.project_root)

    if config_path.exists() and not force:
        print_warning(f"Configuration file already exists: {config_path}")
        print_info("Use --force to overwrite")
        sys.exit(ExitCode.CONFIG_ERROR)

    try:
        config_path.write_text(get_default_config_toml())
    except PermissionError:
        print_error(f"Permission denied: {config_path}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except OSError as e:
        print_error(f"Failed to create config file: {e}")
        sys.exit(ExitCode.FATAL_ERROR)

    print_success(f"Created {config_path}")
    print_info("\nNext steps:")
    print_info("  1. Edit .bootpipe.toml to customize settings")
    print_info('  2. Add "bootpipe run build-bootstrap clear-cache install-assets"')
    print_info("     to the post-install-cmd and post-update-cmd scripts in composer.json")


__all__ = ["init"]
