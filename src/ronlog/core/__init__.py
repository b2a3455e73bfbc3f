"""Core primitives shared by the changelog pipeline: errors, logging, settings, IO."""

from .errors import (
    ConfigError,
    DuplicateSectionError,
    EncodingError,
    ErrorCategory,
    ErrorContext,
    MalformedVersionError,
    RepositoryAccessError,
    RonlogError,
    StorageError,
)
from .logging import LogContext, configure_logging, get_logger

__all__ = [
    "ConfigError",
    "DuplicateSectionError",
    "EncodingError",
    "ErrorCategory",
    "ErrorContext",
    "LogContext",
    "MalformedVersionError",
    "RepositoryAccessError",
    "RonlogError",
    "StorageError",
    "configure_logging",
    "get_logger",
]
