"""Debug data gathered from the loaded modules and the flags."""

from __future__ import annotations

import copy
import platform
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from gotenberg.modules import Debuggable
from gotenberg.sort import alphanumeric_sort

if TYPE_CHECKING:
    from gotenberg.context import Context

VERSION = "snapshot"

_ARCHITECTURES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

ARCHITECTURE = _ARCHITECTURES.get(platform.machine().lower(), platform.machine().lower())


@dataclass
class DebugInfo:
    """Version, architecture, loaded modules and flag values."""

    version: str = ""
    architecture: str = ""
    modules: list[str] = field(default_factory=list)
    modules_additional_data: dict[str, dict[str, Any]] = field(default_factory=dict)
    flags: dict[str, Any] = field(default_factory=dict)


_current: Optional[DebugInfo] = None
_lock = threading.Lock()


def build_debug(ctx: Context) -> None:
    """Build the debug data from the modules loaded by ``ctx``."""
    global _current

    with _lock:
        instances = ctx.loaded_modules()
        _current = DebugInfo(
            version=VERSION,
            architecture=ARCHITECTURE,
            modules=alphanumeric_sort(instances),
            modules_additional_data={
                module_id: mod.debug()
                for module_id, mod in instances.items()
                if isinstance(mod, Debuggable)
            },
            flags={flag.name: str(flag) for flag in ctx.parsed_flags},
        )


def debug() -> DebugInfo:
    """Return a copy of the debug data, empty if it was never built."""
    with _lock:
        if _current is None:
            return DebugInfo()
        return copy.deepcopy(_current)