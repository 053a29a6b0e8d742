"""Host-side registry of user-id submodules.

The host owns the registry and registers providers explicitly.
Importing a provider module never registers anything.
"""

from typing import Dict, Iterator, List, Optional


class RegistryError(Exception):
    """Raised on duplicate or unknown submodule names."""
    pass


class SubmoduleRegistry:
    """Maps submodule names to provider instances."""

    REQUIRED_ATTRS = ("name", "resolve", "decode")

    def __init__(self):
        self._submodules: Dict[str, object] = {}

    def register(self, submodule) -> None:
        """
        Register a submodule under its ``name``.

        Raises:
            RegistryError: If the submodule is incomplete or the name is taken
        """
        missing = [a for a in self.REQUIRED_ATTRS if not hasattr(submodule, a)]
        if missing:
            raise RegistryError(f"Submodule is missing: {', '.join(missing)}")
        name = submodule.name
        if name in self._submodules:
            raise RegistryError(f"Submodule already registered: {name}")
        self._submodules[name] = submodule

    def unregister(self, name: str) -> None:
        if self._submodules.pop(name, None) is None:
            raise RegistryError(f"Unknown submodule: {name}")

    def get(self, name: str):
        try:
            return self._submodules[name]
        except KeyError:
            raise RegistryError(f"Unknown submodule: {name}")

    def gvlid_for(self, name: str) -> Optional[int]:
        """Vendor id used for consent-policy lookups, if the submodule declares one."""
        return getattr(self.get(name), "gvlid", None)

    def names(self) -> List[str]:
        return sorted(self._submodules)

    def __contains__(self, name: str) -> bool:
        return name in self._submodules

    def __iter__(self) -> Iterator:
        return iter(self._submodules.values())

    def __len__(self) -> int:
        return len(self._submodules)
