from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from .dependency import Dependency


@dataclass(frozen=True)
class CargoToml:
    """
    The parsed dependency declarations of a Cargo manifest.

    ``dependencies`` is None when the manifest has no ``[dependencies]`` table.
    Otherwise it is a read-only mapping from dependency name to Dependency.
    """

    dependencies: Optional[Mapping[str, Dependency]] = None

    @classmethod
    def from_dependencies(
        cls, dependencies: Optional[Dict[str, Dependency]]
    ) -> "CargoToml":
        """Build a manifest, freezing the given mapping."""
        if dependencies is None:
            return cls(dependencies=None)
        ordered = {name: dependencies[name] for name in sorted(dependencies)}
        return cls(dependencies=MappingProxyType(ordered))

    def get_dependency(self, name: str) -> Optional[Dependency]:
        """Look up a dependency by name; None when it is not declared."""
        if self.dependencies is None:
            return None
        return self.dependencies.get(name)

    def dependency_names(self) -> List[str]:
        """Sorted names of all declared dependencies."""
        if self.dependencies is None:
            return []
        return sorted(self.dependencies)

    def to_dict(self) -> Optional[Dict[str, str]]:
        """Plain ``{name: version}`` view, or None without a dependency table."""
        if self.dependencies is None:
            return None
        return {name: dep.version for name, dep in self.dependencies.items()}
