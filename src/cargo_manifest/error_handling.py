"""
Error handling for cargo-manifest.

Defines the exception taxonomy raised by the manifest parser and a centralized
error handler that logs failures and dispatches them to registered callbacks.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


class ManifestError(ValueError):
    """Base class for every error raised while reading a manifest."""


class MalformedManifestError(ManifestError):
    """The manifest is not valid TOML or has an unexpected top-level shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed manifest: {detail}")


class InvalidFieldError(ManifestError):
    """A dependency's ``version`` or ``tag`` field is present but not a string."""

    def __init__(self, name: str, field_name: str):
        self.name = name
        self.field = field_name
        super().__init__(f"Dependency '{name}': can't parse {field_name} as str")


class MissingVersionError(ManifestError):
    """A dependency table has neither a ``version`` nor a ``tag`` field."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Dependency '{name}': can't find version or tag")


class ManifestFileError(ManifestError):
    """The manifest file could not be read safely."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        self.file_path = file_path
        super().__init__(message)


class ErrorLevel(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    ERROR = "ERROR"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    PARSING = "PARSING"
    VALIDATION = "VALIDATION"
    CONFIGURATION = "CONFIGURATION"
    FILESYSTEM = "FILESYSTEM"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging."""
        return {
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "module": self.module,
            "function": self.function,
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "traceback": self.traceback_info,
            "suggestions": self.suggestions,
        }


class SecureLogger:
    """Logger that masks credentials before anything is written."""

    # Manifests routinely carry git URLs, some with embedded credentials
    _SENSITIVE_PATTERNS = [
        (r"(https?://[^@\s/]+:)[^@\s]+@", r"\1[REDACTED]@"),
        (r'token["\s]*[:=]["\s]*([a-zA-Z0-9_\-+=/.]{8,})', 'token="[REDACTED]"'),
        (r'password["\s]*[:=]["\s]*([^\s"\']+)', 'password="[REDACTED]"'),
    ]
    _SENSITIVE_KEYS = {"token", "password", "secret", "credential", "auth"}

    def __init__(self, name: str, level: int = logging.WARNING):
        """
        Initialize secure logger.

        Args:
            name: Logger name
            level: Logging level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def _sanitize_message(self, message: str) -> str:
        sanitized = message
        for pattern, replacement in self._SENSITIVE_PATTERNS:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)
        return sanitized

    def _sanitize_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in self._SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_dict(value)
            elif isinstance(value, str):
                sanitized[key] = self._sanitize_message(value)
            else:
                sanitized[key] = value
        return sanitized

    def log_error_context(self, context: ErrorContext):
        """
        Log error context with the level it carries.

        Args:
            context: Error context to log
        """
        log_data = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": self._sanitize_dict(context.details),
        }
        if context.exception:
            log_data["exception"] = type(context.exception).__name__
        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        log_message = f"{self._sanitize_message(context.message)} | {log_data}"
        self.logger.log(getattr(logging, context.level.value), log_message)


# Error callback type
ErrorCallback = Callable[[ErrorContext], None]


class ErrorHandler:
    """
    Centralized error handler.

    Logs every reported problem and forwards it to the callbacks registered
    for its category as well as to global callbacks.
    """

    def __init__(
        self,
        logger_name: str = "cargo_manifest",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
    ):
        self.logger = SecureLogger(logger_name, log_level)
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """
        Register error callback.

        Registering the same callback twice for one category is a no-op.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            callbacks = self.global_callbacks
        else:
            callbacks = self.error_callbacks.setdefault(category, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def unregister_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """Remove a previously registered callback, if present."""
        if category is None:
            callbacks = self.global_callbacks
        else:
            callbacks = self.error_callbacks.get(category, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Args:
            level: Error severity level
            category: Error category
            message: Error message
            module: Module where error occurred
            function: Function where error occurred
            exception: Optional exception object
            details: Additional error details
            suggestions: Suggested fixes

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=traceback.format_exc() if exception else None,
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        self.logger.log_error_context(context)

        if self.enable_callbacks:
            for callback in self.error_callbacks.get(category, []) + self.global_callbacks:
                self.dispatch(callback, context)
        return context

    def dispatch(self, callback: ErrorCallback, context: ErrorContext):
        """Call one callback with a context, logging instead of raising on failure."""
        try:
            callback(context)
        except Exception as cb_error:
            # A failing callback must not mask the original error
            self.logger.logger.error(f"Error in callback: {cb_error}")

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        ErrorHandler: Global error handler
    """
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "cargo_manifest",
) -> ErrorHandler:
    """
    Replace the global error handler with a freshly configured one.

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level, enable_callbacks)
    return _global_error_handler


def log_parsing_error(
    message: str,
    module: str,
    function: str,
    dependency_name: Optional[str] = None,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """
    Report a manifest parsing failure to the global error handler.

    Args:
        message: Error message
        module: Module name
        function: Function name
        dependency_name: Dependency entry that failed, if any
        file_path: Manifest being parsed, if read from disk
        exception: Optional exception

    Returns:
        ErrorContext: The reported context
    """
    details = {}
    if dependency_name is not None:
        details["dependency"] = dependency_name
    if file_path is not None:
        # Only the file name, never the full path
        details["file_path"] = Path(file_path).name

    suggestions = [
        "Check that the manifest is valid TOML",
        "Declare each dependency as a string or a table with a string version or tag",
    ]

    return get_error_handler().error(
        ErrorCategory.PARSING,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=suggestions,
    )
