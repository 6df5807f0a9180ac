"""Generate the aggregated bootstrap artifact."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from bootpipe.bootstrap.namespaces import compile_sources
from bootpipe.bootstrap.resolvers import ModuleResolver
from bootpipe.errors import BuildError
from bootpipe.paths import AUTOLOAD_FILE, BOOTSTRAP_CACHE_FILE, make_path_relative

logger = logging.getLogger(__name__)

# Loads the autoloader, defines the aggregated classes, hands the loader back
ARTIFACT_TEMPLATE = (
    "<?php\n"
    "\n"
    "namespace {{ $loader = require_once __DIR__.'/{autoload}'; }}\n"
    "\n"
    "{body}\n"
    "\n"
    "namespace {{ return $loader; }}\n"
    "            "
)


class BootstrapBuilder:
    """Aggregate a fixed list of classes into one bootstrap file.

    Every build replaces the artifact from scratch: the previous file is
    deleted before anything is resolved, so a failed build leaves no
    artifact behind.
    """

    def __init__(self, resolver: ModuleResolver, artifact_name: str = BOOTSTRAP_CACHE_FILE) -> None:
        self.resolver = resolver
        self.artifact_name = artifact_name

    def artifact_path(self, output_dir: Path | str) -> Path:
        return Path(output_dir).resolve() / self.artifact_name

    def build(
        self,
        output_dir: Path | str,
        autoload_dir: Path | str | None,
        modules: Sequence[str],
    ) -> Path:
        """Build the artifact into ``output_dir``.

        Args:
            output_dir: Directory receiving the artifact
            autoload_dir: Directory holding autoload.php, or None to expect
                it next to the artifact
            modules: Class identifiers, in definition order

        Returns:
            Path of the written artifact

        Raises:
            BuildError: If a module cannot be resolved or a file operation fails
        """
        output = Path(output_dir).resolve()
        artifact = output / self.artifact_name

        try:
            if artifact.exists():
                artifact.unlink()
                logger.debug(f"Removed previous artifact {artifact}")
        except OSError as e:
            raise BuildError(f"Could not remove {artifact}: {e}", path=str(artifact)) from e

        sources = [(identifier, self._read_module(identifier)) for identifier in modules]
        compiled = compile_sources(sources)

        # Drop the compiled unit's own open tag; the template supplies one
        body = compiled[len("<?php") :]

        autoload = ""
        if autoload_dir:
            autoload = make_path_relative(autoload_dir, output)

        content = ARTIFACT_TEMPLATE.format(autoload=autoload + AUTOLOAD_FILE, body=body)
        try:
            artifact.write_text(content, encoding="utf-8", newline="")
        except OSError as e:
            raise BuildError(f"Could not write {artifact}: {e}", path=str(artifact)) from e

        logger.info(f"Wrote bootstrap file {artifact} ({len(modules)} classes)")
        return artifact

    def _read_module(self, identifier: str) -> str:
        path = self.resolver.find_file(identifier)
        if path is None:
            raise BuildError(f"Unable to load class \"{identifier}\"", module=identifier)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(
                f"Could not read {path} for class \"{identifier}\": {e}",
                module=identifier,
                path=str(path),
            ) from e


__all__ = ["ARTIFACT_TEMPLATE", "BootstrapBuilder"]
