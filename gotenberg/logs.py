"""Logger adapters, logger providers and metrics providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class LoggerProvider(Protocol):
    """A module that creates loggers for other modules."""

    def logger(self, mod: Any) -> logging.Logger: ...


@dataclass(frozen=True)
class LeveledLogger:
    """Log a message followed by its key/value pairs, as leveled clients expect."""

    logger: logging.Logger

    @staticmethod
    def _format(msg: str, args: tuple[Any, ...]) -> str:
        return f"{msg}: [{' '.join(str(arg) for arg in args)}]"

    def error(self, msg: str, *args: Any) -> None:
        self.logger.error(self._format(msg, args))

    def warn(self, msg: str, *args: Any) -> None:
        self.logger.warning(self._format(msg, args))

    def info(self, msg: str, *args: Any) -> None:
        self.logger.info(self._format(msg, args))

    def debug(self, msg: str, *args: Any) -> None:
        self.logger.debug(self._format(msg, args))


@dataclass(frozen=True, kw_only=True)
class Metric:
    """A unitary metric: a unique name, a description and a reader."""

    name: str
    description: str = ""
    read: Callable[[], float]


@runtime_checkable
class MetricsProvider(Protocol):
    """A module that provides a list of metrics."""

    def metrics(self) -> list[Metric]: ...