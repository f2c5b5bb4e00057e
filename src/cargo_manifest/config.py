"""
Configuration management for cargo-manifest.

Settings come from dataclass defaults, an optional JSON or YAML config file,
and ``CARGO_MANIFEST_*`` environment variables, in that order of precedence.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)

OUTPUT_FORMATS = ("table", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SecurityConfig:
    """Limits applied when reading manifest files from disk."""

    max_file_size_mb: int = 1
    allowed_file_extensions: List[str] = field(default_factory=lambda: [".toml"])

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes for internal use."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"


@dataclass
class OutputConfig:
    """Command-line output configuration."""

    output_format: str = "table"


@dataclass
class ManifestConfig:
    """Main configuration containing all subsections."""

    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# Global configuration instance
_global_config: Optional[ManifestConfig] = None


def validate_config_values(config: ManifestConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    max_file_size_mb = config.security.max_file_size_mb
    if not isinstance(max_file_size_mb, int) or isinstance(max_file_size_mb, bool):
        errors.append("security.max_file_size_mb must be an integer")
    elif max_file_size_mb <= 0:
        errors.append("security.max_file_size_mb must be positive")

    extensions = config.security.allowed_file_extensions
    if not isinstance(extensions, list):
        errors.append("security.allowed_file_extensions must be a list")
    elif not extensions:
        errors.append("security.allowed_file_extensions must not be empty")
    else:
        for extension in extensions:
            if not isinstance(extension, str) or not extension.startswith("."):
                errors.append(
                    f"security.allowed_file_extensions entry must start with '.': {extension}"
                )

    log_level = config.logging.log_level
    if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(LOG_LEVELS)}")

    output_format = config.output.output_format
    if not isinstance(output_format, str) or output_format not in OUTPUT_FORMATS:
        errors.append(f"output.output_format must be one of {', '.join(OUTPUT_FORMATS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or YAML file, or None when it can't be read."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                console.print(
                    f"⚠️  Unsupported config format: {config_path.suffix}", style="yellow"
                )
                return None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Config file {config_path} must contain a mapping", style="yellow"
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".cargo-manifest.json",
        Path.cwd() / ".cargo-manifest.yaml",
        Path.cwd() / ".cargo-manifest.yml",
        Path.home() / ".config" / "cargo-manifest" / "config.json",
        Path.home() / ".config" / "cargo-manifest" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ManifestConfig) -> None:
    """Apply CARGO_MANIFEST_* environment variable overrides."""

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return None

    if log_level := os.environ.get("CARGO_MANIFEST_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    max_file_size = get_env_int("CARGO_MANIFEST_MAX_FILE_SIZE_MB")
    if max_file_size is not None:
        config.security.max_file_size_mb = max_file_size
    if output_format := os.environ.get("CARGO_MANIFEST_OUTPUT_FORMAT"):
        config.output.output_format = output_format.lower()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(f"⚠️  Config section {section_name} must be a mapping", style="yellow")
        return

    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def build_config(file_config: Optional[Dict[str, Any]] = None) -> ManifestConfig:
    """Build a configuration from defaults, file data and the environment."""
    config = ManifestConfig()

    if file_config:
        for section_name in ("security", "logging", "output"):
            if section_name in file_config:
                apply_config_section(
                    getattr(config, section_name), file_config[section_name], section_name
                )

    load_environment_overrides(config)
    return config


def load_config() -> ManifestConfig:
    """Load configuration from file and environment, falling back on invalid values."""
    config_file = find_config_file()
    file_config = load_config_file(config_file) if config_file else None
    config = build_config(file_config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values.", style="yellow")
        config = ManifestConfig()

    return config


def get_config() -> ManifestConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file."""
    sample_config = {
        "security": {
            "max_file_size_mb": 1,
            "allowed_file_extensions": [".toml"],
        },
        "logging": {
            "log_level": "WARNING",
        },
        "output": {
            "output_format": "table",
        },
    }

    return json.dumps(sample_config, indent=2)
