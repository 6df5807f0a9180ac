"""Lifecycle step commands, meant to be called from Composer hooks."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import click

from bootpipe.pipeline import LifecycleStep

if TYPE_CHECKING:
    from bootpipe.cli import BootpipeContext

logger = logging.getLogger(__name__)

STEP_NAMES = [step.value for step in LifecycleStep]


def _run(ctx: BootpipeContext, steps: Sequence[str], as_json: bool = False) -> None:
    from bootpipe.commands.utils import exit_on_error, load_options, make_io, pipeline_factory
    from bootpipe.logging import console
    from bootpipe.pipeline import describe_outcome, run_steps

    io = make_io(ctx)
    with exit_on_error(ctx, as_json=as_json):
        factory = pipeline_factory(
            ctx,
            io,
            with_builder=LifecycleStep.BUILD_BOOTSTRAP.value in steps,
        )
        outcomes = run_steps(steps, lambda: load_options(ctx), factory)

    summaries = [describe_outcome(outcome) for outcome in outcomes]
    for summary in summaries:
        logger.debug(f"{summary['step']}: {summary['state']}{' (skipped)' if summary['skipped'] else ''}")

    if as_json:
        console.print_json(data=summaries)


@click.command("build-bootstrap")
@click.pass_obj
def build_bootstrap(ctx: BootpipeContext) -> None:
    """Regenerate the bootstrap file in var-dir.

    Skipped with a notice when var-dir does not exist.
    """
    _run(ctx, [LifecycleStep.BUILD_BOOTSTRAP.value])


@click.command("clear-cache")
@click.pass_obj
def clear_cache(ctx: BootpipeContext) -> None:
    """Clear the application cache (console cache:clear).

    Warmup is skipped unless symfony-cache-warmup is true in composer.json.
    """
    _run(ctx, [LifecycleStep.CLEAR_CACHE.value])


@click.command("install-assets")
@click.pass_obj
def install_assets(ctx: BootpipeContext) -> None:
    """Install bundle assets into web-dir (console assets:install).

    Assets are copied by default. Set symfony-assets-install to "symlink"
    or "relative" in composer.json, or SYMFONY_ASSETS_INSTALL in the
    environment, to symlink them instead.
    """
    _run(ctx, [LifecycleStep.INSTALL_ASSETS.value])


@click.command("run")
@click.argument("steps", nargs=-1, required=True, type=click.Choice(STEP_NAMES))
@click.option("--json", "as_json", is_flag=True, help="Print step outcomes as JSON")
@click.pass_obj
def run(ctx: BootpipeContext, steps: tuple[str, ...], as_json: bool) -> None:
    """Run lifecycle steps in order.

    Each step gets freshly resolved options. The first failing step stops
    the run.

    \b
    Examples:
        bootpipe run build-bootstrap clear-cache install-assets
        bootpipe run install-assets --json
    """
    _run(ctx, list(steps), as_json=as_json)


__all__ = ["build_bootstrap", "clear_cache", "install_assets", "run", "STEP_NAMES"]
