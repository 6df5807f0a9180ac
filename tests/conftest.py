"""Shared fixtures for bootpipe tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bootpipe.bootstrap.modules import BOOTSTRAP_MODULES, CONTAINER_AWARE_HTTP_KERNEL


class RecordingIO:
    """EventIO double that records everything written to it."""

    def __init__(self, decorated: bool = False) -> None:
        self.decorated = decorated
        self.lines: list[str] = []
        self.chunks: list[str] = []
        self.errors: list[str] = []

    def write(self, message: str, newline: bool = True) -> None:
        if newline:
            self.lines.append(message)
        else:
            self.chunks.append(message)

    def write_error(self, message: str) -> None:
        self.errors.append(message)

    def is_decorated(self) -> bool:
        return self.decorated


def class_source(identifier: str) -> str:
    """A small but realistic PHP class file for ``identifier``."""
    namespace, _, name = identifier.rpartition("\\")
    return f"""<?php

/*
 * This file is part of a test fixture.
 */

namespace {namespace};

// Fixture class
class {name}
{{
    public function describe()
    {{
        return '{name}  keeps   its spacing';
    }}
}}
"""


def write_vendor(root: Path, identifiers: list[str]) -> Path:
    """Install PSR-4 class files plus Composer 2 metadata under root/vendor."""
    vendor = root / "vendor"
    package_dir = vendor / "symfony" / "symfony"
    for identifier in identifiers:
        relative = identifier[len("Symfony\\") :].replace("\\", "/") + ".php"
        path = package_dir / "src" / "Symfony" / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(class_source(identifier))

    installed = {
        "packages": [
            {
                "name": "symfony/symfony",
                "autoload": {"psr-4": {"Symfony\\": "src/Symfony/"}},
                "install-path": "../symfony/symfony",
            }
        ],
        "dev": True,
    }
    (vendor / "composer").mkdir(parents=True, exist_ok=True)
    (vendor / "composer" / "installed.json").write_text(json.dumps(installed))
    return vendor


@pytest.fixture
def io() -> RecordingIO:
    return RecordingIO()


@pytest.fixture
def decorated_io() -> RecordingIO:
    return RecordingIO(decorated=True)


@pytest.fixture
def install_vendor():
    """Return write_vendor for tests that need a custom class set."""
    return write_vendor


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with the standard app/bin/web/var layout."""
    for directory in ("app", "bin", "web", "var"):
        (tmp_path / directory).mkdir()
    (tmp_path / "app" / "autoload.php").write_text("<?php\nreturn require __DIR__.'/../vendor/autoload.php';\n")
    (tmp_path / "bin" / "console").write_text("#!/usr/bin/env php\n<?php\n")
    return tmp_path


@pytest.fixture
def php_project(project: Path) -> Path:
    """A standard project with every bootstrap class installed in vendor."""
    write_vendor(project, [*BOOTSTRAP_MODULES, CONTAINER_AWARE_HTTP_KERNEL])
    return project
