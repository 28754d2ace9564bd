"""External commands run in their own process group, so they die with their children."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from typing import IO, Optional

_DEADLINE_EXCEEDED = "context deadline exceeded"


class CommandError(RuntimeError):
    """Raised when a command cannot start, fails, times out or cannot be killed.

    ``exit_code`` holds the exit code reported for the failure, if any.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def _exit_code(returncode: int) -> int:
    # A process terminated by a signal has no exit code of its own.
    return -1 if returncode < 0 else returncode


def _describe(returncode: int) -> str:
    if returncode < 0:
        name = signal.strsignal(-returncode) or f"signal {-returncode}"
        return f"signal: {name.lower()}"
    return f"exit status {returncode}"


def _log_output(logger: logging.Logger, stream: IO[bytes]) -> None:
    try:
        with stream:
            for raw in stream:
                line = raw
                if line.endswith(b"\n"):
                    line = line[:-1]
                    if line.endswith(b"\r"):
                        line = line[:-1]
                if line:
                    logger.debug(line.decode(errors="replace"))
    except ValueError:
        # The stream was closed underneath us.
        pass
    except OSError as err:
        logger.error(f"pipe unix process output error: {err}")


class Cmd:
    """A command run in a new session, killable together with all its children."""

    def __init__(
        self,
        logger: logging.Logger,
        bin_path: str,
        args: tuple[str, ...],
        deadline: Optional[float] = None,
        has_context: bool = False,
    ) -> None:
        self.args = [bin_path, *args]
        self.logger = logger.getChild(bin_path.replace("/", ""))
        self._deadline = deadline
        self._has_context = has_context
        self._process: Optional[subprocess.Popen] = None
        self._readers: list[threading.Thread] = []

    def start(self) -> None:
        """Start the command without waiting for its completion."""
        if self._process is not None:
            raise CommandError("start unix process: already started")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise CommandError(f"start unix process: {_DEADLINE_EXCEEDED}")

        piped = self.logger.isEnabledFor(logging.DEBUG)
        output = subprocess.PIPE if piped else subprocess.DEVNULL
        self.logger.debug(f"start unix process: {' '.join(self.args)}")

        try:
            self._process = subprocess.Popen(
                self.args,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=output,
                start_new_session=True,
            )
        except OSError as err:
            raise CommandError(f"start unix process: {err}") from err

        if piped:
            for name, stream in (("stdout", self._process.stdout), ("stderr", self._process.stderr)):
                reader = threading.Thread(
                    target=_log_output,
                    args=(self.logger.getChild(name), stream),
                    daemon=True,
                )
                reader.start()
                self._readers.append(reader)

    def _join_readers(self) -> None:
        for reader in self._readers:
            reader.join(timeout=1.0)

    def wait(self) -> None:
        """Wait for the started command to complete; raise if it failed."""
        if self._process is None:
            raise CommandError("wait for unix process: exec: not started")
        returncode = self._process.wait()
        self._join_readers()
        if returncode != 0:
            raise CommandError(
                f"wait for unix process: {_describe(returncode)}",
                exit_code=_exit_code(returncode),
            )

    def _kill_logged(self) -> None:
        try:
            self.kill()
        except CommandError as err:
            self.logger.error(str(err))

    def exec(self) -> int:
        """Run the command until it completes or its deadline passes.

        The process and all its children are killed in any case. Returns 0
        on success; otherwise raises :class:`CommandError` carrying an exit
        code: 10 without a deadline, 131 if the command could not start, 62
        if the deadline passed, or the exit code of the process.
        """
        if not self._has_context:
            raise CommandError("nil context", exit_code=10)

        try:
            self.start()
        except CommandError as err:
            raise CommandError(f"start command: {err}", exit_code=131) from err

        remaining = None
        if self._deadline is not None:
            remaining = max(0.0, self._deadline - time.monotonic())

        try:
            returncode = self._process.wait(timeout=remaining)
        except subprocess.TimeoutExpired:
            self._kill_logged()
            self._process.wait()
            self._join_readers()
            raise CommandError(f"context done: {_DEADLINE_EXCEEDED}", exit_code=62) from None

        self._kill_logged()
        self._join_readers()

        if returncode == 0:
            return 0
        raise CommandError(
            f"unix process error: wait for unix process: {_describe(returncode)}",
            exit_code=_exit_code(returncode),
        )

    def kill(self) -> None:
        """Kill the process and all its children; a no-op if it is gone or never started."""
        if self._process is None:
            return
        try:
            os.killpg(self._process.pid, signal.SIGKILL)
        except ProcessLookupError:
            self.logger.debug("unix process already killed")
            return
        except OSError as err:
            raise CommandError(f"kill unix process: {err}") from err
        self.logger.debug("unix process killed")


def command(logger: logging.Logger, bin_path: str, *args: str) -> Cmd:
    """Create a command without a deadline."""
    return Cmd(logger, bin_path, args)


def command_context(
    timeout: Optional[float], logger: logging.Logger, bin_path: str, *args: str
) -> Cmd:
    """Create a command that must complete within ``timeout`` seconds from now."""
    if timeout is None:
        raise CommandError("nil context")
    return Cmd(logger, bin_path, args, deadline=time.monotonic() + timeout, has_context=True)