"""Shared helpers for bootpipe commands."""

from __future__ import annotations

import functools
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from pydantic import ValidationError

from bootpipe.config import BootpipeSettings, ProjectConfig
from bootpipe.errors import BootpipeError, ConfigError
from bootpipe.logging import ConsoleIO, console, err_console, print_error
from bootpipe.options import OptionSet, resolve_options

if TYPE_CHECKING:
    from bootpipe.bootstrap import BootstrapBuilder
    from bootpipe.cli import BootpipeContext
    from bootpipe.pipeline import PipelineFactory


def get_settings(ctx: BootpipeContext) -> BootpipeSettings:
    return ctx.settings or BootpipeSettings()


def make_io(ctx: BootpipeContext) -> ConsoleIO:
    """Console sink; never decorated when colors are disabled."""
    return ConsoleIO(decorated=False if ctx.no_color else None)


def load_project(ctx: BootpipeContext) -> ProjectConfig:
    return ProjectConfig.load(ctx.project_root, get_settings(ctx).composer_file)


def load_options(ctx: BootpipeContext) -> OptionSet:
    """Resolve a fresh option set from defaults, composer.json and environment."""
    overrides = load_project(ctx).option_overrides()
    try:
        return resolve_options(project_overrides=overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid project options: {e}") from e


def create_builder(ctx: BootpipeContext) -> tuple[BootstrapBuilder, bool]:
    """Build the bootstrap builder and probe the framework kernel once.

    Returns:
        Tuple of (builder, framework_kernel_available)
    """
    from bootpipe.bootstrap import BootstrapBuilder, composer_resolver, detect_framework_kernel

    resolver = composer_resolver(
        ctx.project_root,
        get_settings(ctx).vendor_dir,
        load_project(ctx).autoload,
    )
    return BootstrapBuilder(resolver), detect_framework_kernel(resolver)


def pipeline_factory(
    ctx: BootpipeContext,
    io: ConsoleIO,
    with_builder: bool = True,
) -> PipelineFactory:
    """Return a callable creating one pipeline per lifecycle event.

    Services are shared by every pipeline the factory creates. Module
    resolution is deferred until a build-bootstrap step passes its var-dir
    check, then reused.
    """
    from bootpipe.php import PhpExecutableFinder
    from bootpipe.pipeline import LifecyclePipeline
    from bootpipe.runner import SubprocessRunner

    provide_builder = functools.cache(lambda: create_builder(ctx)) if with_builder else None
    php_finder = PhpExecutableFinder(get_settings(ctx).php_binary)
    runner = SubprocessRunner()

    def make(options: OptionSet) -> LifecyclePipeline:
        return LifecyclePipeline(
            options,
            io,
            project_root=ctx.project_root,
            runner=runner,
            php_finder=php_finder,
            builder_provider=provide_builder,
        )

    return make


@contextmanager
def exit_on_error(ctx: BootpipeContext, as_json: bool = False) -> Iterator[None]:
    """Turn bootpipe errors into an error line (or JSON) and the matching exit code."""
    try:
        yield
    except BootpipeError as e:
        if as_json:
            console.print_json(data=e.to_dict())
        else:
            print_error(e.message)
        if ctx.debug:
            err_console.print_exception()
        sys.exit(e.exit_code)


__all__ = [
    "get_settings",
    "make_io",
    "load_project",
    "load_options",
    "create_builder",
    "pipeline_factory",
    "exit_on_error",
]
