"""Tests for the lifecycle pipeline."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bootpipe.bootstrap import BootstrapBuilder, composer_resolver
from bootpipe.errors import BuildError, ConfigError, ExecutableNotFoundError, ExitCode, PipelineError
from bootpipe.options import ASSETS_INSTALL_ENV, OptionSet, resolve_options
from bootpipe.pipeline import (
    LifecyclePipeline,
    LifecycleStep,
    PipelineState,
    describe_outcome,
    run_steps,
)
from bootpipe.runner import SubprocessResult

PHP = "/usr/bin/php"


def options(**overrides) -> OptionSet:
    return resolve_options(project_overrides=overrides, environ={})


@pytest.fixture
def runner() -> MagicMock:
    runner = MagicMock()
    runner.run.side_effect = lambda executable, args, **kwargs: SubprocessResult(
        command=[executable, *args], exit_code=0
    )
    return runner


@pytest.fixture
def php_finder() -> MagicMock:
    finder = MagicMock()
    finder.find.return_value = PHP
    return finder


@pytest.fixture
def make_pipeline(project: Path, io, runner: MagicMock, php_finder: MagicMock):
    def factory(opts: OptionSet | None = None, **kwargs) -> LifecyclePipeline:
        kwargs.setdefault("io", io)
        return LifecyclePipeline(
            opts or options(),
            project_root=project,
            runner=runner,
            php_finder=php_finder,
            **kwargs,
        )

    return factory


class TestClearCache:
    """Tests for the clear-cache step."""

    def test_no_warmup_by_default(self, make_pipeline, runner: MagicMock, project: Path) -> None:
        outcome = make_pipeline().on_clear_cache()

        assert outcome.command == [PHP, "bin/console", "cache:clear", "--no-warmup"]
        assert outcome.state is PipelineState.SUCCEEDED
        assert not outcome.skipped
        runner.run.assert_called_once()
        assert runner.run.call_args.kwargs["cwd"] == project.resolve()
        assert runner.run.call_args.kwargs["timeout"] == 300

    def test_warmup_enabled(self, make_pipeline) -> None:
        outcome = make_pipeline(options(**{"cache-warmup": True})).on_clear_cache()

        assert outcome.command == [PHP, "bin/console", "cache:clear"]

    def test_ansi_when_decorated(self, make_pipeline, decorated_io) -> None:
        outcome = make_pipeline(io=decorated_io).on_clear_cache()

        assert outcome.command == [PHP, "bin/console", "--ansi", "cache:clear", "--no-warmup"]

    def test_unlimited_timeout(self, make_pipeline, runner: MagicMock) -> None:
        make_pipeline(options(**{"process-timeout": None})).on_clear_cache()

        assert runner.run.call_args.kwargs["timeout"] is None

    def test_output_forwarded(self, make_pipeline, runner: MagicMock, io) -> None:
        def run(executable, args, on_output=None, **kwargs):
            on_output("Clearing the cache")
            on_output(" for the dev environment\n")
            return SubprocessResult(command=[executable, *args], exit_code=0)

        runner.run.side_effect = run

        make_pipeline().on_clear_cache()

        assert io.chunks == ["Clearing the cache", " for the dev environment\n"]

    def test_missing_bin_dir_skips(self, make_pipeline, runner: MagicMock, io, project: Path) -> None:
        outcome = make_pipeline(options(**{"bin-dir": "scripts"})).on_clear_cache()

        assert outcome.skipped
        assert outcome.state is PipelineState.SUCCEEDED
        runner.run.assert_not_called()
        assert io.lines == [
            f"The bin-dir (scripts) specified in composer.json was not found in {project.resolve()}, "
            "can not clear the cache."
        ]

    def test_failure(self, make_pipeline, runner: MagicMock) -> None:
        runner.run.side_effect = None
        runner.run.return_value = SubprocessResult(
            command=[PHP, "bin/console", "cache:clear", "--no-warmup"], exit_code=255
        )
        pipeline = make_pipeline()

        with pytest.raises(PipelineError) as exc_info:
            pipeline.on_clear_cache()

        error = exc_info.value
        assert str(error) == "An error occurred when executing the \"'cache:clear --no-warmup'\" command."
        assert error.step == "clear-cache"
        assert error.context["returncode"] == 255
        assert error.exit_code == ExitCode.STEP_FAILED
        assert pipeline.state is PipelineState.FAILED

    def test_timeout_is_failure(self, make_pipeline, runner: MagicMock) -> None:
        runner.run.side_effect = None
        runner.run.return_value = SubprocessResult(command=[PHP], exit_code=-9, timed_out=True)

        with pytest.raises(PipelineError) as exc_info:
            make_pipeline().on_clear_cache()

        assert exc_info.value.context["timed_out"] is True

    def test_php_not_found(self, make_pipeline, php_finder: MagicMock, runner: MagicMock) -> None:
        php_finder.find.side_effect = ExecutableNotFoundError("The php executable could not be found")
        pipeline = make_pipeline()

        with pytest.raises(ExecutableNotFoundError):
            pipeline.on_clear_cache()

        assert pipeline.state is PipelineState.FAILED
        runner.run.assert_not_called()


class TestInstallAssets:
    """Tests for the install-assets step."""

    def test_hard_copy_by_default(self, make_pipeline) -> None:
        outcome = make_pipeline().on_install_assets()

        assert outcome.command == [PHP, "bin/console", "assets:install", "web"]

    def test_relative_symlinks(self, make_pipeline) -> None:
        outcome = make_pipeline(options(**{"assets-install-mode": "relative"})).on_install_assets()

        assert outcome.command == [PHP, "bin/console", "assets:install", "--symlink", "--relative", "web"]

    def test_environment_symlink(self, make_pipeline) -> None:
        opts = resolve_options(
            project_overrides={"assets-install-mode": "relative"},
            environ={ASSETS_INSTALL_ENV: "symlink"},
        )

        outcome = make_pipeline(opts).on_install_assets()

        assert "--symlink" in outcome.command
        assert "--relative" not in outcome.command

    def test_custom_web_dir(self, make_pipeline, project: Path) -> None:
        (project / "public").mkdir()

        outcome = make_pipeline(options(**{"web-dir": "public"})).on_install_assets()

        assert outcome.command[-1] == "public"

    def test_missing_web_dir_skips(self, make_pipeline, runner: MagicMock, io) -> None:
        outcome = make_pipeline(options(**{"web-dir": "public"})).on_install_assets()

        assert outcome.skipped
        runner.run.assert_not_called()
        assert "The web-dir (public) specified in composer.json" in io.lines[0]
        assert io.lines[0].endswith("can not install assets.")

    def test_missing_bin_dir_reported_first(self, make_pipeline, io) -> None:
        opts = options(**{"bin-dir": "scripts", "web-dir": "public"})

        make_pipeline(opts).on_install_assets()

        assert len(io.lines) == 1
        assert io.lines[0].startswith("The bin-dir (scripts)")


class TestBuildBootstrap:
    """Tests for the build-bootstrap step."""

    def test_missing_var_dir_skips(self, make_pipeline, io, project: Path) -> None:
        builder = MagicMock()

        outcome = make_pipeline(options(**{"var-dir": "cache"}), builder=builder).on_build_bootstrap()

        assert outcome.skipped
        assert outcome.state is PipelineState.SUCCEEDED
        builder.build.assert_not_called()
        assert not (project / "cache").exists()
        assert io.lines[0].endswith("can not build bootstrap file.")

    def test_builds_artifact(self, make_pipeline, php_project: Path, runner: MagicMock) -> None:
        builder = BootstrapBuilder(composer_resolver(php_project))

        outcome = make_pipeline(builder=builder).on_build_bootstrap()

        assert outcome.artifact == (php_project / "var" / "bootstrap.php.cache").resolve()
        assert outcome.artifact.read_text().startswith("<?php\n\nnamespace { $loader = require_once")
        runner.run.assert_not_called()

    def test_passes_capability_flag(self, make_pipeline, project: Path) -> None:
        builder = MagicMock()
        builder.build.return_value = project / "var" / "bootstrap.php.cache"

        make_pipeline(builder=builder, framework_kernel_available=True).on_build_bootstrap()

        output_dir, autoload_dir, modules = builder.build.call_args.args
        assert output_dir == project.resolve() / "var"
        assert autoload_dir == project.resolve() / "app"
        assert modules[-1] == "Symfony\\Bundle\\FrameworkBundle\\HttpKernel"

    def test_build_error_wrapped(self, make_pipeline) -> None:
        builder = MagicMock()
        builder.build.side_effect = BuildError('Unable to load class "Missing"')
        pipeline = make_pipeline(builder=builder)

        with pytest.raises(PipelineError, match="generating the bootstrap file") as exc_info:
            pipeline.on_build_bootstrap()

        assert isinstance(exc_info.value.__cause__, BuildError)
        assert exc_info.value.context["cause"] == 'Unable to load class "Missing"'
        assert pipeline.state is PipelineState.FAILED

    def test_provider_not_called_when_skipped(self, make_pipeline) -> None:
        provider = MagicMock()

        outcome = make_pipeline(options(**{"var-dir": "cache"}), builder_provider=provider).on_build_bootstrap()

        assert outcome.skipped
        provider.assert_not_called()

    def test_provider_supplies_builder_and_flag(self, make_pipeline, project: Path) -> None:
        builder = MagicMock()
        builder.build.return_value = project / "var" / "bootstrap.php.cache"
        provider = MagicMock(return_value=(builder, True))

        make_pipeline(builder_provider=provider).on_build_bootstrap()

        provider.assert_called_once_with()
        modules = builder.build.call_args.args[2]
        assert modules[-1] == "Symfony\\Bundle\\FrameworkBundle\\HttpKernel"

    def test_provider_error_fails_pipeline(self, make_pipeline) -> None:
        provider = MagicMock(side_effect=ConfigError("Could not read installed.json"))
        pipeline = make_pipeline(builder_provider=provider)

        with pytest.raises(ConfigError):
            pipeline.on_build_bootstrap()

        assert pipeline.state is PipelineState.FAILED

    def test_without_builder(self, make_pipeline) -> None:
        with pytest.raises(PipelineError, match="No bootstrap builder"):
            make_pipeline().on_build_bootstrap()


class TestDispatch:
    """Tests for event routing and pipeline lifetime."""

    def test_dispatch_by_name(self, make_pipeline) -> None:
        outcome = make_pipeline().dispatch("clear-cache")

        assert outcome.step is LifecycleStep.CLEAR_CACHE

    def test_unknown_step(self, make_pipeline) -> None:
        with pytest.raises(PipelineError, match="Unknown lifecycle step: deploy"):
            make_pipeline().dispatch("deploy")

    def test_single_use(self, make_pipeline) -> None:
        pipeline = make_pipeline()
        pipeline.on_clear_cache()

        with pytest.raises(PipelineError, match="already handled"):
            pipeline.on_install_assets()

    def test_describe_outcome(self, make_pipeline) -> None:
        summary = describe_outcome(make_pipeline().dispatch(LifecycleStep.INSTALL_ASSETS))

        assert summary == {
            "step": "install-assets",
            "state": "succeeded",
            "skipped": False,
            "command": [PHP, "bin/console", "assets:install", "web"],
            "artifact": None,
        }


class TestRunSteps:
    """Tests for running several events in sequence."""

    def test_fresh_pipeline_and_options_per_step(self, make_pipeline) -> None:
        made_options = []
        pipelines = []

        def make_options() -> OptionSet:
            made_options.append(options())
            return made_options[-1]

        def factory(opts: OptionSet) -> LifecyclePipeline:
            pipelines.append(make_pipeline(opts))
            return pipelines[-1]

        outcomes = run_steps(["clear-cache", "install-assets"], make_options, factory)

        assert [o.step for o in outcomes] == [LifecycleStep.CLEAR_CACHE, LifecycleStep.INSTALL_ASSETS]
        assert len(made_options) == 2
        assert pipelines[0] is not pipelines[1]

    def test_first_failure_stops_run(self, make_pipeline, runner: MagicMock) -> None:
        runner.run.side_effect = None
        runner.run.return_value = SubprocessResult(command=[PHP], exit_code=1)

        with pytest.raises(PipelineError):
            run_steps(["clear-cache", "install-assets"], options, make_pipeline)

        assert runner.run.call_count == 1
