"""Lifecycle pipeline: run one build step in response to a lifecycle event.

A pipeline object handles exactly one event::

    Idle -> Validating -> Executing -> Succeeded | Failed

Missing directories are soft preconditions: the step is skipped with a
diagnostic and the pipeline still succeeds. A failed subprocess or bootstrap
build is fatal and raises ``PipelineError``.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from bootpipe.bootstrap.builder import BootstrapBuilder
from bootpipe.bootstrap.modules import bootstrap_modules
from bootpipe.errors import BootpipeError, BuildError, ExecutableNotFoundError, PipelineError
from bootpipe.options import OptionSet
from bootpipe.paths import CONSOLE_FILE, resolve_dir
from bootpipe.php import PhpExecutableFinder
from bootpipe.runner import SubprocessRunner

logger = logging.getLogger(__name__)

# Creates the bootstrap builder and reports whether the framework kernel resolves
BuilderProvider = Callable[[], tuple[BootstrapBuilder, bool]]


class EventIO(Protocol):
    """Human-readable progress sink supplied by the triggering dispatcher."""

    def write(self, message: str, newline: bool = True) -> None: ...

    def write_error(self, message: str) -> None: ...

    def is_decorated(self) -> bool: ...


class LifecycleStep(str, Enum):
    BUILD_BOOTSTRAP = "build-bootstrap"
    CLEAR_CACHE = "clear-cache"
    INSTALL_ASSETS = "install-assets"


class PipelineState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """What one pipeline run did."""

    step: LifecycleStep
    state: PipelineState
    skipped: bool = False
    command: list[str] | None = None
    artifact: Path | None = None


class LifecyclePipeline:
    """Validate preconditions and execute a single lifecycle step.

    Attributes:
        options: Effective options for this invocation (read-only)
        io: Output sink for progress and diagnostics
        project_root: Directory relative option paths are resolved against
        builder_provider: Called for a builder on the first bootstrap build
            that passes its precondition, when no builder was given
        state: Current pipeline state
    """

    def __init__(
        self,
        options: OptionSet,
        io: EventIO,
        project_root: Path | str | None = None,
        runner: SubprocessRunner | None = None,
        builder: BootstrapBuilder | None = None,
        php_finder: PhpExecutableFinder | None = None,
        framework_kernel_available: bool = False,
        builder_provider: BuilderProvider | None = None,
    ) -> None:
        self.options = options
        self.io = io
        self.project_root = Path(project_root or Path.cwd()).resolve()
        self.runner = runner or SubprocessRunner()
        self.builder = builder
        self.php_finder = php_finder or PhpExecutableFinder()
        self.framework_kernel_available = framework_kernel_available
        self.builder_provider = builder_provider
        self.state = PipelineState.IDLE

    def dispatch(self, step: LifecycleStep | str) -> StepOutcome:
        """Route a lifecycle event name to its handler."""
        try:
            step = LifecycleStep(step)
        except ValueError:
            raise PipelineError(f"Unknown lifecycle step: {step}", step=str(step)) from None

        handlers: dict[LifecycleStep, Callable[[], StepOutcome]] = {
            LifecycleStep.BUILD_BOOTSTRAP: self.on_build_bootstrap,
            LifecycleStep.CLEAR_CACHE: self.on_clear_cache,
            LifecycleStep.INSTALL_ASSETS: self.on_install_assets,
        }
        return handlers[step]()

    def on_build_bootstrap(self) -> StepOutcome:
        """Regenerate the bootstrap artifact in ``var-dir``."""
        step = LifecycleStep.BUILD_BOOTSTRAP
        self._begin(step)

        if not self._has_directory("var-dir", "build bootstrap file"):
            return self._skip(step)

        if self.builder is None and self.builder_provider is not None:
            try:
                self.builder, self.framework_kernel_available = self.builder_provider()
            except BootpipeError:
                self.state = PipelineState.FAILED
                raise

        if self.builder is None:
            self.state = PipelineState.FAILED
            raise PipelineError("No bootstrap builder configured", step=step.value)

        self.state = PipelineState.EXECUTING
        try:
            artifact = self.builder.build(
                self._path("var-dir"),
                self._path("app-dir"),
                bootstrap_modules(self.framework_kernel_available),
            )
        except BuildError as e:
            self.state = PipelineState.FAILED
            logger.debug(f"Bootstrap build failed: {e}")
            raise PipelineError(
                "An error occurred when generating the bootstrap file.",
                step=step.value,
                cause=str(e),
            ) from e

        self.state = PipelineState.SUCCEEDED
        return StepOutcome(step=step, state=self.state, artifact=artifact)

    def on_clear_cache(self) -> StepOutcome:
        """Run ``console cache:clear`` for the project."""
        step = LifecycleStep.CLEAR_CACHE
        self._begin(step)

        console = self._console("clear the cache")
        if console is None:
            return self._skip(step)

        args = ["cache:clear"]
        if not self.options.cache_warmup:
            args.append("--no-warmup")

        command = self._execute(step, console, args)
        return StepOutcome(step=step, state=self.state, command=command)

    def on_install_assets(self) -> StepOutcome:
        """Run ``console assets:install`` into ``web-dir``."""
        step = LifecycleStep.INSTALL_ASSETS
        self._begin(step)

        console = self._console("install assets")
        if console is None:
            return self._skip(step)

        if not self._has_directory("web-dir", "install assets"):
            return self._skip(step)

        args = ["assets:install", *self.options.symlink_flags(), self.options.web_dir]
        command = self._execute(step, console, args)
        return StepOutcome(step=step, state=self.state, command=command)

    def _begin(self, step: LifecycleStep) -> None:
        if self.state is not PipelineState.IDLE:
            raise PipelineError(
                f"Pipeline already handled an event (state: {self.state.value})",
                step=step.value,
            )
        logger.debug(f"Handling {step.value} with options {self.options.to_dict()}")
        self.state = PipelineState.VALIDATING

    def _skip(self, step: LifecycleStep) -> StepOutcome:
        self.state = PipelineState.SUCCEEDED
        logger.debug(f"Skipped {step.value}")
        return StepOutcome(step=step, state=self.state, skipped=True)

    def _path(self, key: str) -> Path:
        return resolve_dir(self.options.get(key), self.project_root)

    def _has_directory(self, key: str, action: str) -> bool:
        if self._path(key).is_dir():
            return True
        self.io.write(
            f"The {key} ({self.options.get(key)}) specified in composer.json "
            f"was not found in {self.project_root}, can not {action}."
        )
        return False

    def _console(self, action: str) -> str | None:
        """Relative path of the console executable, None if bin-dir is missing."""
        if not self._has_directory("bin-dir", action):
            return None
        return f"{self.options.bin_dir}/{CONSOLE_FILE}"

    def _execute(self, step: LifecycleStep, console: str, args: list[str]) -> list[str]:
        try:
            php = self.php_finder.find()
        except ExecutableNotFoundError:
            self.state = PipelineState.FAILED
            raise

        prefix = [console]
        if self.io.is_decorated():
            prefix.append("--ansi")

        self.state = PipelineState.EXECUTING
        result = self.runner.run(
            php,
            [*prefix, *args],
            cwd=self.project_root,
            timeout=self.options.process_timeout,
            on_output=lambda chunk: self.io.write(chunk, newline=False),
        )

        if not result.success:
            self.state = PipelineState.FAILED
            cmd = shlex.quote(" ".join(args))
            raise PipelineError(
                f'An error occurred when executing the "{cmd}" command.',
                step=step.value,
                command=result.command,
                returncode=result.exit_code,
                timed_out=result.timed_out,
            )

        self.state = PipelineState.SUCCEEDED
        return result.command


PipelineFactory = Callable[[OptionSet], LifecyclePipeline]


def run_steps(
    steps: Iterable[LifecycleStep | str],
    make_options: Callable[[], OptionSet],
    make_pipeline: PipelineFactory,
) -> list[StepOutcome]:
    """Run several lifecycle events in order, each with a fresh pipeline.

    Options are resolved again for every event. The first fatal error
    propagates and the remaining events are not run.
    """
    outcomes = []
    for step in steps:
        pipeline = make_pipeline(make_options())
        outcomes.append(pipeline.dispatch(step))
    return outcomes


def describe_outcome(outcome: StepOutcome) -> Mapping[str, Any]:
    """Summarize an outcome for logging or JSON output."""
    return {
        "step": outcome.step.value,
        "state": outcome.state.value,
        "skipped": outcome.skipped,
        "command": outcome.command,
        "artifact": str(outcome.artifact) if outcome.artifact else None,
    }


__all__ = [
    "BuilderProvider",
    "EventIO",
    "LifecycleStep",
    "PipelineState",
    "StepOutcome",
    "LifecyclePipeline",
    "PipelineFactory",
    "run_steps",
    "describe_outcome",
]
