# In src/cargo_manifest/dependency.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Dependency:
    """A single dependency declared in a manifest, reduced to its version or tag."""

    version: str
