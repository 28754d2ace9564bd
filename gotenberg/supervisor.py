"""Supervision of a long-running process shared by concurrent tasks."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from gotenberg.filter import DeadlineExceededError


class ProcessAlreadyRestartingError(RuntimeError):
    """Raised when a restart is requested while one is already in progress."""

    def __init__(self, message: str = "process already restarting") -> None:
        super().__init__(message)


class MaximumQueueSizeExceededError(RuntimeError):
    """Raised when a task is submitted while the request queue is full."""

    def __init__(self, message: str = "maximum queue size exceeded") -> None:
        super().__init__(message)


@runtime_checkable
class Process(Protocol):
    """A process that can be started, stopped and checked for health."""

    def start(self, logger: logging.Logger) -> None: ...

    def stop(self, logger: logging.Logger) -> None: ...

    def healthy(self, logger: logging.Logger) -> bool: ...


def _wrap(prefix: str, err: BaseException) -> Exception:
    if isinstance(err, (DeadlineExceededError, ProcessAlreadyRestartingError)):
        return type(err)(f"{prefix}: {err}")
    return RuntimeError(f"{prefix}: {err}")


class ProcessSupervisor:
    """Starts, restarts and stops a process and runs tasks against it one at a time.

    ``max_req_limit`` restarts the process after that many tasks, and
    ``max_queue_size`` bounds the number of waiting tasks; zero disables
    either limit.
    """

    def __init__(
        self,
        logger: logging.Logger,
        process: Process,
        max_req_limit: int = 0,
        max_queue_size: int = 0,
    ) -> None:
        self.logger = logger
        self.process = process
        self.max_req_limit = max_req_limit
        self.max_queue_size = max_queue_size
        self._process_lock = threading.Lock()
        self._state = threading.Lock()
        self._first_start = False
        self._req_counter = 0
        self._queue_size = 0
        self._restarts = 0
        self._restarting = False

    def launch(self) -> None:
        """Start the managed process."""
        self.logger.debug("start process")
        try:
            self.process.start(self.logger)
        except Exception as err:
            raise RuntimeError(f"start process: {err}") from err
        with self._state:
            self._first_start = True
        self.logger.debug("process successfully started")

    def shutdown(self) -> None:
        """Stop the managed process."""
        self.logger.debug("shutdown process")
        try:
            self.process.stop(self.logger)
        except Exception as err:
            raise RuntimeError(f"shutdown process: {err}") from err
        self.logger.debug("process successfully shutdown")

    def restart(self) -> None:
        """Stop then start the process; raise if a restart is already running."""
        with self._state:
            if self._restarting:
                self.logger.debug("process already restarting, skip restart")
                raise ProcessAlreadyRestartingError()
            self._restarting = True

        self.logger.debug("restart process")
        try:
            try:
                self.shutdown()
            except Exception as err:
                # Chances are it is already stopped.
                self.logger.debug(f"stop process before restart: {err}")

            try:
                self.launch()
            except Exception as err:
                raise RuntimeError(f"restart process: {err}") from err

            with self._state:
                self._req_counter = 0
                self._restarts += 1
            self.logger.debug("process successfully restarted")
        finally:
            with self._state:
                self._restarting = False

    def healthy(self) -> bool:
        """Tell whether the process is healthy; a non-started or restarting one is."""
        with self._state:
            if not self._first_start or self._restarting:
                return True
        return self.process.healthy(self.logger)

    def run(
        self,
        logger: logging.Logger,
        task: Callable[[], Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """Run ``task`` while holding the process, within ``timeout`` seconds.

        Starts the process on first use, restarts it when unhealthy or when
        the request limit is reached, and returns what the task returns.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._state:
            if self.max_queue_size > 0 and self._queue_size >= self.max_queue_size:
                raise MaximumQueueSizeExceededError()
            self._queue_size += 1

        while True:
            try:
                return self._run_locked(logger, task, deadline)
            except ProcessAlreadyRestartingError:
                logger.debug(
                    "process is already restarting, trying to acquire process lock again..."
                )
                with self._state:
                    self._queue_size += 1

    def _acquire(self, deadline: Optional[float]) -> bool:
        if deadline is None:
            return self._process_lock.acquire()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return self._process_lock.acquire(blocking=False)
        return self._process_lock.acquire(timeout=remaining)

    def _run_locked(
        self, logger: logging.Logger, task: Callable[[], Any], deadline: Optional[float]
    ) -> Any:
        if not self._acquire(deadline):
            logger.debug("failed to acquire process lock before deadline")
            with self._state:
                self._queue_size -= 1
            raise DeadlineExceededError("acquire process lock: context deadline exceeded")

        logger.debug("process lock acquired")
        with self._state:
            self._queue_size -= 1
            self._req_counter += 1
            first_started = self._first_start

        release = True
        try:
            if not first_started:
                try:
                    self._run_with_deadline(deadline, self.launch)
                except Exception as err:
                    raise _wrap("process first start", err) from err

            if not self.healthy():
                self.logger.debug("process is unhealthy, cannot handle task, restarting...")
                try:
                    self._run_with_deadline(deadline, self.restart)
                except Exception as err:
                    raise _wrap("process restart before task", err) from err

            try:
                return self._run_with_deadline(deadline, task)
            finally:
                with self._state:
                    limit_reached = (
                        self.max_req_limit > 0 and self._req_counter >= self.max_req_limit
                    )
                if limit_reached:
                    self.logger.debug("max request limit reached, restarting eagerly...")
                    release = False
                    threading.Thread(
                        target=self._restart_and_release, args=(logger,), daemon=True
                    ).start()
        finally:
            if release:
                logger.debug("process lock released")
                self._process_lock.release()

    def _restart_and_release(self, logger: logging.Logger) -> None:
        try:
            self.restart()
        except Exception as err:
            self.logger.error(f"process restart after task: {err}")
        finally:
            logger.debug("process lock released")
            self._process_lock.release()

    @staticmethod
    def _run_with_deadline(deadline: Optional[float], fn: Callable[[], Any]) -> Any:
        if deadline is None:
            return fn()
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise DeadlineExceededError()

        outcome: dict[str, Any] = {}
        done = threading.Event()

        def target() -> None:
            try:
                outcome["value"] = fn()
            except BaseException as err:  # handed back to the caller
                outcome["error"] = err
            finally:
                done.set()

        threading.Thread(target=target, daemon=True).start()
        if not done.wait(remaining):
            raise DeadlineExceededError()
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("value")

    def req_queue_size(self) -> int:
        """Return the number of tasks waiting for the process."""
        with self._state:
            return self._queue_size

    def restarts_count(self) -> int:
        """Return the number of successful restarts."""
        with self._state:
            return self._restarts