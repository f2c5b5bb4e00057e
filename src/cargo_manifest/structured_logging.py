"""
Structured logging configuration for cargo-manifest.

Provides consistent, machine-readable logging of manifest parsing events.
Records are written to stderr so command output on stdout stays parseable.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ManifestLogger:
    """Event-style logger for manifest parsing events."""

    def __init__(self, name: str = "cargo_manifest.parser"):
        self.logger = logging.getLogger(name)
        self._setup_logger()

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **kwargs}
        getattr(self.logger, level)("", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        """Log error level event."""
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


_parser_logger = ManifestLogger("cargo_manifest.parser")


def get_parser_logger() -> ManifestLogger:
    """Get the manifest parser logger."""
    return _parser_logger


def log_parse_start(source: str) -> None:
    """Log the start of a manifest parse."""
    get_parser_logger().debug("manifest_parse_started", source=source)


def log_dependency_skipped(source: str, name: str, value_type: str) -> None:
    """Log a dependency entry whose value shape is not understood."""
    get_parser_logger().debug(
        "dependency_skipped", source=source, dependency=name, value_type=value_type
    )


def log_parse_complete(
    source: str, total_dependencies: Optional[int], duration_ms: float
) -> None:
    """Log a successful parse."""
    get_parser_logger().info(
        "manifest_parsed",
        source=source,
        total_dependencies=total_dependencies,
        has_dependencies=total_dependencies is not None,
        parse_duration_ms=round(duration_ms, 3),
    )


def log_parse_failed(source: str, error_type: str, **kwargs) -> None:
    """Log a failed parse."""
    get_parser_logger().warning(
        "manifest_parse_failed", source=source, error_type=error_type, **kwargs
    )


def configure_logging(log_level: str = "WARNING") -> None:
    """Set the level of every cargo-manifest logger."""
    level = getattr(logging, log_level.upper(), logging.WARNING)
    logging.getLogger("cargo_manifest").setLevel(level)
    _parser_logger.logger.setLevel(level)
