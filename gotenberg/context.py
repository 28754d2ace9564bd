"""Context used to provision modules and to look up the modules they need."""

from __future__ import annotations

from typing import Any, Iterable

from gotenberg.flags import ParsedFlags
from gotenberg.modules import ModuleDescriptor, Provisioner, Validator


class ModuleError(RuntimeError):
    """Raised when a module cannot be found, provisioned or validated."""


class Context:
    """Initializes modules on demand and keeps their instances."""

    def __init__(
        self,
        flags: ParsedFlags | None = None,
        descriptors: Iterable[ModuleDescriptor] | None = None,
    ) -> None:
        self.parsed_flags = flags if flags is not None else ParsedFlags()
        self.descriptors = list(descriptors or [])
        self._instances: dict[str, Any] = {}

    def module(self, kind: type) -> Any:
        """Return the one module which satisfies ``kind``."""
        try:
            mods = self.modules(kind)
        except ModuleError as err:
            raise ModuleError(f"get module: {err}") from err
        if len(mods) != 1:
            name = getattr(kind, "__name__", kind)
            raise ModuleError(f"expected to have one and only one {name} module")
        return mods[0]

    def modules(self, kind: type) -> list[Any]:
        """Return the modules which satisfy ``kind``, initializing them if needed."""
        mods = []
        for desc in self.descriptors:
            new_instance = desc.new()
            if not isinstance(new_instance, kind):
                continue
            if desc.id in self._instances:
                mods.append(self._instances[desc.id])
            else:
                self._load_module(desc.id, new_instance)
                mods.append(new_instance)
        return mods

    def loaded_modules(self) -> dict[str, Any]:
        """Return the initialized module instances by ID."""
        return dict(self._instances)

    def _load_module(self, module_id: str, instance: Any) -> None:
        if isinstance(instance, Provisioner):
            try:
                instance.provision(self)
            except Exception as err:
                raise ModuleError(f"provision module {module_id}: {err}") from err

        if isinstance(instance, Validator):
            try:
                instance.validate()
            except Exception as err:
                raise ModuleError(f"validate module {module_id}: {err}") from err

        self._instances[module_id] = instance