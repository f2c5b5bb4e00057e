"""Read dependency versions from Cargo.toml manifests."""

__version__ = "1.0.0"

from .dependency import Dependency
from .error_handling import (
    InvalidFieldError,
    MalformedManifestError,
    ManifestError,
    ManifestFileError,
    MissingVersionError,
)
from .manifest import CargoToml
from .parsers import get_dependency, parse_cargo_toml, parse_cargo_toml_file

__all__ = [
    "CargoToml",
    "Dependency",
    "InvalidFieldError",
    "MalformedManifestError",
    "ManifestError",
    "ManifestFileError",
    "MissingVersionError",
    "__version__",
    "get_dependency",
    "parse_cargo_toml",
    "parse_cargo_toml_file",
]
