"""PHP built-in web server launcher for development."""

from __future__ import annotations

import logging
from pathlib import Path

from bootpipe.errors import ExitCode
from bootpipe.pipeline import EventIO
from bootpipe.runner import SubprocessRunner

logger = logging.getLogger(__name__)


class BuiltinServer:
    """Run ``php -S <address> <router>`` from a document root.

    The server runs without a timeout until it exits or is interrupted.
    Its output is only shown when ``verbose`` is set; otherwise it is
    discarded and the failure message points at ``-v``.
    """

    def __init__(self, php_binary: str, runner: SubprocessRunner | None = None) -> None:
        self.php_binary = php_binary
        self.runner = runner or SubprocessRunner()

    def validate_doc_root(self, doc_root: Path) -> bool:
        return doc_root.is_dir()

    def resolve_router(self, router: Path | str | None, default: Path) -> Path | None:
        """Return the absolute router script path, None if it does not exist."""
        candidate = Path(router) if router else default
        if not candidate.is_file():
            return None
        return candidate.resolve()

    def build_command_line(self, address: str, router: Path) -> list[str]:
        return [self.php_binary, "-S", address, str(router)]

    def run(
        self,
        io: EventIO,
        address: str,
        doc_root: Path,
        default_router: Path,
        router: Path | str | None = None,
        environment: str = "dev",
        verbose: bool = False,
    ) -> int:
        """Start the server and block until it exits.

        Returns:
            The server's exit code, or 1 if the document root or router
            script does not exist
        """
        if not self.validate_doc_root(doc_root):
            io.write_error(f'The given document root directory "{doc_root}" does not exist')
            return int(ExitCode.CONFIG_ERROR)

        if environment == "prod":
            io.write_error("Running PHP built-in server in production environment is NOT recommended!")

        router_path = self.resolve_router(router, default_router)
        if router_path is None:
            io.write_error(f'The given router script "{router or default_router}" does not exist')
            return int(ExitCode.CONFIG_ERROR)

        io.write(f"Server running on http://{address}\n")
        io.write("Quit the server with CONTROL-C.")

        executable, *args = self.build_command_line(address, router_path)
        result = self.runner.run(
            executable,
            args,
            cwd=doc_root,
            timeout=None,
            on_output=lambda chunk: io.write(chunk, newline=False),
            stream_output=verbose,
        )

        if not result.success:
            logger.debug(f"Built-in server exited with {result.exit_code}")
            io.write_error("Built-in server terminated unexpectedly")
            if result.output_disabled:
                io.write_error("Run the command again with -v option for more details")

        return result.exit_code


__all__ = ["BuiltinServer"]
