import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .config import get_config
from .dependency import Dependency
from .error_handling import (
    ErrorCallback,
    ErrorCategory,
    InvalidFieldError,
    MalformedManifestError,
    ManifestError,
    ManifestFileError,
    MissingVersionError,
    get_error_handler,
    log_parsing_error,
)
from .manifest import CargoToml
from .structured_logging import (
    log_dependency_skipped,
    log_parse_complete,
    log_parse_failed,
    log_parse_start,
)


class ValueKind(Enum):
    """Shape of a raw ``[dependencies]`` value after TOML decoding."""

    STRING = "string"
    TABLE = "table"
    OTHER = "other"


def _classify_value(value: Any) -> ValueKind:
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, dict):
        return ValueKind.TABLE
    return ValueKind.OTHER


def _decode_document(text: str) -> Dict[str, Any]:
    """Decode manifest text into a generic TOML tree."""
    if not isinstance(text, str):
        raise MalformedManifestError(
            f"expected manifest text as str, got {type(text).__name__}"
        )

    try:
        return toml.loads(text)
    except toml.TomlDecodeError as e:
        raise MalformedManifestError(str(e)) from e


def _extract_string_field(name: str, table: Dict[str, Any], field_name: str) -> str:
    value = table[field_name]
    if not isinstance(value, str):
        raise InvalidFieldError(name, field_name)
    return value


def _normalize_dependency(name: str, value: Any) -> Optional[Dependency]:
    """
    Reduce one raw ``[dependencies]`` entry to a Dependency.

    A string is the version itself. A table yields its ``version`` field, or
    its ``tag`` field when there is no version. Any other shape is not
    understood and yields None so the caller can skip it.

    Raises:
        InvalidFieldError: ``version`` or ``tag`` is present but not a string
        MissingVersionError: A table has neither ``version`` nor ``tag``
    """
    kind = _classify_value(value)

    if kind is ValueKind.STRING:
        return Dependency(version=value)

    if kind is ValueKind.TABLE:
        if "version" in value:
            return Dependency(version=_extract_string_field(name, value, "version"))
        if "tag" in value:
            return Dependency(version=_extract_string_field(name, value, "tag"))
        raise MissingVersionError(name)

    return None


def _parse_dependencies(
    raw_dependencies: Dict[str, Any], source: str
) -> Dict[str, Dependency]:
    dependencies = {}

    # Sorted so that the first reported failure doesn't depend on table order
    for name, value in sorted(raw_dependencies.items()):
        dependency = _normalize_dependency(name, value)
        if dependency is None:
            log_dependency_skipped(source, name, type(value).__name__)
            continue
        dependencies[name] = dependency

    return dependencies


def parse_cargo_toml(
    text: str,
    error_callback: Optional[ErrorCallback] = None,
    source: str = "<string>",
) -> CargoToml:
    """
    Parse the ``[dependencies]`` table of a Cargo manifest.

    Dependencies may be written as a plain version string
    (``serde = "1.0"``) or as a table carrying a ``version`` or, for
    dependencies pinned to a git tag, a ``tag`` field
    (``hyle = { git = "...", tag = "0.12" }``). ``version`` wins when both
    are present. Entries of any other shape are skipped.

    Args:
        text: Manifest contents
        error_callback: Optional callback for handling parsing errors
        source: Label of the manifest used in log records

    Returns:
        CargoToml: The parsed manifest; ``dependencies`` is None when the
        manifest has no ``[dependencies]`` table

    Raises:
        MalformedManifestError: Invalid TOML, or ``dependencies`` is not a table
        InvalidFieldError: A ``version`` or ``tag`` field is not a string
        MissingVersionError: A dependency table has neither field
    """
    started = time.perf_counter()
    log_parse_start(source)

    try:
        data = _decode_document(text)

        raw_dependencies = data.get("dependencies")
        if raw_dependencies is None:
            dependencies = None
        elif _classify_value(raw_dependencies) is not ValueKind.TABLE:
            raise MalformedManifestError(
                f"invalid type for `dependencies`: expected a table, "
                f"found {type(raw_dependencies).__name__}"
            )
        else:
            dependencies = _parse_dependencies(raw_dependencies, source)
    except ManifestError as e:
        context = log_parsing_error(
            str(e),
            "parsers",
            "parse_cargo_toml",
            dependency_name=getattr(e, "name", None),
            exception=e,
        )
        log_parse_failed(source, type(e).__name__, dependency=getattr(e, "name", None))
        if error_callback is not None:
            get_error_handler().dispatch(error_callback, context)
        raise

    manifest = CargoToml.from_dependencies(dependencies)
    log_parse_complete(
        source,
        None if dependencies is None else len(dependencies),
        (time.perf_counter() - started) * 1000,
    )
    return manifest


def get_dependency(manifest: CargoToml, name: str) -> Optional[Dependency]:
    """Look up ``name`` in a parsed manifest; None when it is not declared."""
    return manifest.get_dependency(name)


def _validate_file_path(file_path: str) -> Path:
    """
    Validate a manifest path before reading it.

    Args:
        file_path: The file path to validate

    Returns:
        Path: Validated and resolved path object

    Raises:
        ManifestFileError: If path is invalid or unsafe
    """
    if not file_path or not isinstance(file_path, str):
        raise ManifestFileError("File path must be a non-empty string")

    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise ManifestFileError(f"Invalid file path: {e}", file_path)

    if not path.exists():
        raise ManifestFileError(f"File does not exist: {path}", file_path)

    if not path.is_file():
        raise ManifestFileError(f"Path is not a file: {path}", file_path)

    security = get_config().security
    allowed_extensions = {ext.lower() for ext in security.allowed_file_extensions}
    if path.suffix.lower() not in allowed_extensions:
        raise ManifestFileError(f"File type not allowed: {path.suffix or path.name}", file_path)

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ManifestFileError(f"Cannot access file: {e}", file_path)
    if file_size > security.max_file_size_bytes:
        raise ManifestFileError(
            f"File too large: {file_size} bytes (max: {security.max_file_size_bytes})",
            file_path,
        )

    return path


def _safe_read_file(path: Path) -> str:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError:
        raise ManifestFileError("File contains invalid UTF-8 characters", str(path))
    except PermissionError:
        raise ManifestFileError("Permission denied reading file", str(path))
    except OSError as e:
        raise ManifestFileError(f"Error reading file: {e}", str(path))


def parse_cargo_toml_file(
    file_path: str, error_callback: Optional[ErrorCallback] = None
) -> CargoToml:
    """
    Read a Cargo.toml from disk and parse its dependencies.

    Args:
        file_path: Path to the manifest
        error_callback: Optional callback for handling parsing errors

    Returns:
        CargoToml: The parsed manifest

    Raises:
        ManifestFileError: If the file cannot be read safely
        ManifestError: If the contents cannot be parsed
    """
    try:
        validated_path = _validate_file_path(file_path)
        content = _safe_read_file(validated_path)
    except ManifestFileError as e:
        error_handler = get_error_handler()
        context = error_handler.error(
            ErrorCategory.FILESYSTEM,
            str(e),
            "parsers",
            "parse_cargo_toml_file",
            exception=e,
            details={"file_path": Path(str(file_path)).name},
        )
        if error_callback is not None:
            error_handler.dispatch(error_callback, context)
        raise

    return parse_cargo_toml(content, error_callback, source=validated_path.name)
