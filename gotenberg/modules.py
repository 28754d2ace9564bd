"""Module registry and the interfaces that modules may implement."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

from gotenberg.flags import FlagSet

if TYPE_CHECKING:
    from gotenberg.context import Context


class RegistrationError(ValueError):
    """Raised when a module cannot be registered."""


@runtime_checkable
class Module(Protocol):
    """A plugin which adds functionalities to the application or to other modules."""

    def descriptor(self) -> ModuleDescriptor: ...


@dataclass
class ModuleDescriptor:
    """Describes a module: its unique snake-case ID, its flags and a factory."""

    id: str
    flag_set: Optional[FlagSet] = None
    new: Optional[Callable[[], Any]] = None


@runtime_checkable
class Provisioner(Protocol):
    """A module initialized from flags, environment variables or the context."""

    def provision(self, ctx: Context) -> None: ...


@runtime_checkable
class Validator(Protocol):
    """A module validated after provisioning."""

    def validate(self) -> None: ...


@runtime_checkable
class App(Protocol):
    """A module started and stopped by the application.

    ``startup_message`` may return an empty string, in which case a default
    message is shown instead.
    """

    def start(self) -> None: ...

    def startup_message(self) -> str: ...

    def stop(self, timeout: Optional[float]) -> None: ...


@runtime_checkable
class SystemLogger(Protocol):
    """A module which displays messages on startup."""

    def system_messages(self) -> list[str]: ...


@runtime_checkable
class Debuggable(Protocol):
    """A module which provides additional debug data."""

    def debug(self) -> dict[str, Any]: ...


_descriptors: dict[str, ModuleDescriptor] = {}
_descriptors_lock = threading.RLock()


def must_register_module(mod: Module) -> None:
    """Register a module, raising :class:`RegistrationError` if it is invalid."""
    desc = mod.descriptor()

    if not desc.id:
        raise RegistrationError("module with an empty ID cannot be registered")
    if desc.new is None:
        raise RegistrationError("module New function cannot be nil")
    if desc.new() is None:
        raise RegistrationError("module New function cannot return a nil instance")

    with _descriptors_lock:
        if desc.id in _descriptors:
            raise RegistrationError(f"module {desc.id} is already registered")
        _descriptors[desc.id] = desc


def get_module_descriptors() -> list[ModuleDescriptor]:
    """Return the descriptors of all registered modules, sorted by ID."""
    with _descriptors_lock:
        return sorted(_descriptors.values(), key=lambda desc: desc.id)