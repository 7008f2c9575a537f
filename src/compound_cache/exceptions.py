"""Exception hierarchy for the compound property cache.

Every error raised on purpose by the package derives from
:class:`CompoundCacheError`, so callers (and the CLI) can catch a single
type. Each exception carries a ``details`` mapping that is emitted verbatim
by the structured logger through :meth:`CompoundCacheError.to_dict`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__all__ = [
    "CompoundCacheError",
    "ConfigError",
    "InvalidIdentifierError",
    "MalformedValueError",
    "ResolutionError",
    "CompoundNotFoundError",
    "MalformedDocumentError",
    "MissingFieldError",
    "MalformedEntryError",
]


class CompoundCacheError(Exception):
    """Base exception for all compound cache errors."""

    def __init__(
        self,
        message: str,
        *,
        details: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


# Configuration Errors
class ConfigError(CompoundCacheError):
    """Raised when configuration files are missing or invalid."""

    def __init__(self, message: str, *, config_file: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, details={"config_file": config_file}, cause=cause)
        self.config_file = config_file


# Identifier Errors
class InvalidIdentifierError(CompoundCacheError):
    """Raised when an identifier carries an unrecognized namespace tag."""

    def __init__(self, namespace: str, value: str) -> None:
        super().__init__(
            f"Unrecognized compound namespace {namespace!r}",
            details={"namespace": namespace, "identifier": value},
        )
        self.namespace = namespace
        self.value = value


class MalformedValueError(CompoundCacheError):
    """Raised when an identifier value does not parse for its namespace."""

    def __init__(self, namespace: str, value: str, *, reason: str | None = None) -> None:
        message = f"Malformed {namespace} identifier {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"namespace": namespace, "identifier": value})
        self.namespace = namespace
        self.value = value


# Resolution Errors
class ResolutionError(CompoundCacheError):
    """Raised when the remote property lookup fails."""

    def __init__(
        self,
        message: str,
        *,
        identifier: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"identifier": identifier, "url": url, "status_code": status_code},
            cause=cause,
        )
        self.identifier = identifier
        self.url = url
        self.status_code = status_code


class CompoundNotFoundError(CompoundCacheError):
    """Raised when the resolver confirms that no compound matches."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No compound found for {identifier}", details={"identifier": identifier})
        self.identifier = identifier


# Document Errors
class MalformedDocumentError(CompoundCacheError):
    """Raised when a persisted cache document cannot be read as a whole."""


class MissingFieldError(MalformedDocumentError):
    """Raised when the document root lacks a required member."""

    def __init__(self, field: str, *, reason: str | None = None) -> None:
        message = f"`{field}` could not be found"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, details={"field": field})
        self.field = field


class MalformedEntryError(CompoundCacheError):
    """Raised when a single cache entry is missing a field or wrong-typed."""

    def __init__(self, message: str, *, index: int | None = None, field: str | None = None) -> None:
        if index is not None:
            message = f"cache[{index}]: {message}"
        super().__init__(message, details={"index": index, "field": field})
        self.index = index
        self.field = field
