"""Blocking subprocess execution with streamed output.

The runner never raises for a non-zero exit status; the caller decides
whether a failed result is fatal.
"""

from __future__ import annotations

import codecs
import logging
import os
import selectors
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from bootpipe.errors import ExecutableNotFoundError

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]

# Bytes read from the child per readiness event
CHUNK_SIZE = 8192


@dataclass
class SubprocessResult:
    """Outcome of one subprocess run."""

    command: list[str]
    exit_code: int
    output: str = ""
    timed_out: bool = False
    output_disabled: bool = False
    duration: float = field(default=0.0, compare=False)

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class SubprocessRunner:
    """Run external commands, delivering merged stdout/stderr as it arrives.

    Output is read on the calling thread from a ``selectors`` loop, so
    chunks reach ``on_output`` in arrival order and no background thread
    is involved.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self.env = dict(env) if env is not None else None
        self.chunk_size = chunk_size

    def run(
        self,
        executable: str | Path,
        args: Sequence[str | Path] = (),
        cwd: Path | str | None = None,
        timeout: float | None = None,
        on_output: OutputCallback | None = None,
        stream_output: bool = True,
    ) -> SubprocessResult:
        """Run a command to completion or until the timeout elapses.

        Args:
            executable: Program to run
            args: Program arguments
            cwd: Working directory (default: current directory)
            timeout: Seconds before the child is killed, None to wait forever
            on_output: Called with each decoded output chunk
            stream_output: If False, child output is discarded entirely

        Returns:
            The subprocess result; ``success`` is False on non-zero exit or timeout

        Raises:
            ExecutableNotFoundError: If the executable cannot be started
        """
        command = [str(executable), *(str(arg) for arg in args)]
        logger.debug(f"Running {' '.join(command)} (cwd={cwd or os.getcwd()}, timeout={timeout})")

        output_target = subprocess.PIPE if stream_output else subprocess.DEVNULL
        started = time.monotonic()
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=self.env,
                stdout=output_target,
                stderr=subprocess.STDOUT if stream_output else subprocess.DEVNULL,
            )
        except OSError as e:
            raise ExecutableNotFoundError(
                f"Could not execute {command[0]}: {e}", command=command
            ) from e

        deadline = None if timeout is None else started + timeout
        try:
            if stream_output:
                output, timed_out = self._pump(process, deadline, on_output)
            else:
                output, timed_out = "", False
            if not timed_out:
                timed_out = not self._wait(process, deadline)
        finally:
            if process.poll() is None:
                # Interrupted or timed out: never leave the child behind
                process.kill()
                process.wait()

        result = SubprocessResult(
            command=command,
            exit_code=process.returncode,
            output=output,
            timed_out=timed_out,
            output_disabled=not stream_output,
            duration=time.monotonic() - started,
        )
        if timed_out:
            logger.warning(f"Command timed out after {timeout}s: {' '.join(command)}")
        else:
            logger.debug(f"Command exited with {result.exit_code}")
        return result

    def _pump(
        self,
        process: subprocess.Popen[bytes],
        deadline: float | None,
        on_output: OutputCallback | None,
    ) -> tuple[str, bool]:
        """Read the child's output until EOF or deadline.

        Returns:
            Tuple of (captured output, timed_out)
        """
        assert process.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunks: list[str] = []
        fd = process.stdout.fileno()

        def deliver(text: str) -> None:
            if text:
                chunks.append(text)
                if on_output is not None:
                    on_output(text)

        timed_out = False
        with selectors.DefaultSelector() as selector:
            selector.register(fd, selectors.EVENT_READ)
            while True:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    timed_out = True
                    break
                if not selector.select(remaining):
                    continue
                data = os.read(fd, self.chunk_size)
                if not data:
                    break
                deliver(decoder.decode(data))

        deliver(decoder.decode(b"", final=True))
        process.stdout.close()
        return "".join(chunks), timed_out

    @staticmethod
    def _wait(process: subprocess.Popen[bytes], deadline: float | None) -> bool:
        """Wait for exit; False if the deadline passed first."""
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
        try:
            process.wait(timeout=remaining)
        except subprocess.TimeoutExpired:
            return False
        return True


__all__ = ["CHUNK_SIZE", "OutputCallback", "SubprocessResult", "SubprocessRunner"]
