"""
Structured error types for ronlog.

Every failure the changelog pipeline can surface is a ``RonlogError``
subclass carrying a category, structured context and an optional chained
cause. A command-line front end maps these to exit codes; the library only
raises them.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        RonlogError                            │
        │              (category, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  RepositoryAccessError   MalformedVersionError   ConfigError  │
        │  (REPOSITORY)            (VALIDATION)            (CONFIG)     │
        │                                                               │
        │  StorageError            EncodingError   DuplicateSectionError│
        │  (STORAGE)               (PARSE)         (INTERNAL)           │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = MalformedVersionError("v1.2.3")
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.text
    'v1.2.3'

    Adding context fluently:

    >>> err = EncodingError("unexpected token").with_context(path="CHANGELOG.ron")
    >>> err.context.path
    'CHANGELOG.ron'

Guardrails:
    ❌ DON'T: Raise for a commit that lacks the delimiter
    ✅ DO: Skip it; only file and repository level failures raise

    ❌ DON'T: Swallow the original ``OSError``
    ✅ DO: Pass it as ``cause=`` so the traceback keeps it

Tags:
    error-handling, exception-hierarchy, error-context, ronlog

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and exit-code mapping."""

    REPOSITORY = "REPOSITORY"     # Git access, unresolvable revisions
    STORAGE = "STORAGE"           # Disk, permissions, missing files
    PARSE = "PARSE"               # Malformed fragment or RONLOG text
    VALIDATION = "VALIDATION"     # Version strings, argument values
    CONFIG = "CONFIG"             # Settings files, environment
    INTERNAL = "INTERNAL"         # Broken invariants
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that were set appear in ``to_dict()``; anything without a
    dedicated field lands in ``metadata``.

    Attributes:
        path: File the operation was reading or writing
        commit: Commit identifier or revision being resolved
        version: Version text involved
        encoding: Fragment encoding (``rst``, ``md``, ``ron``)
        line: 1-based line number for parse errors
        metadata: Additional key-value pairs
    """

    path: str | None = None
    commit: str | None = None
    version: str | None = None
    encoding: str | None = None
    line: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["path", "commit", "version", "encoding", "line"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RonlogError(Exception):
    """
    Base exception for all ronlog errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is also stored as ``__cause__`` so tracebacks show
    the chain.

    Examples:
        >>> error = RonlogError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["error_type"]
        'RonlogError'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RonlogError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("Cannot write").with_context(path=str(path))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REPOSITORY ERRORS
# =============================================================================


class RepositoryAccessError(RonlogError):
    """The repository cannot be opened, or a revision cannot be resolved."""

    default_category = ErrorCategory.REPOSITORY


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class MalformedVersionError(RonlogError):
    """Version text is not ``MAJOR.MINOR.PATCH``."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, text: str, reason: str | None = None, **kwargs: Any):
        self.text = text
        self.reason = reason
        message = f"Malformed version: {text!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, **kwargs)
        self.context.version = text


# =============================================================================
# STORAGE / ENCODING ERRORS
# =============================================================================


class StorageError(RonlogError):
    """Reading or writing a fragment or RONLOG file failed."""

    default_category = ErrorCategory.STORAGE


class EncodingError(RonlogError):
    """
    Text could not be decoded as a fragment or RONLOG.

    ``line`` and ``column`` are 1-based when the decoder knows them.
    """

    default_category = ErrorCategory.PARSE

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        **kwargs: Any,
    ):
        if line is not None:
            message = f"{message} at line {line}" + (f", column {column}" if column else "")
        super().__init__(message, **kwargs)
        self.line = line
        self.column = column
        if line is not None:
            self.context.line = line


# =============================================================================
# CONFIGURATION / INTERNAL ERRORS
# =============================================================================


class ConfigError(RonlogError):
    """Settings are missing or invalid."""

    default_category = ErrorCategory.CONFIG


class DuplicateSectionError(RonlogError):
    """Two RONLOG sections share a version, or sections are out of order."""

    default_category = ErrorCategory.INTERNAL


__all__ = [
    "ConfigError",
    "DuplicateSectionError",
    "EncodingError",
    "ErrorCategory",
    "ErrorContext",
    "MalformedVersionError",
    "RepositoryAccessError",
    "RonlogError",
    "StorageError",
]
