"""Custom exception hierarchy for snapcache.

These exceptions standardize error signaling across the package. All of them
inherit from :class:`SnapcacheError` and accept a structured ``details``
payload so callers can log or inspect the offending values.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "SnapcacheError",
    "ValidationError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "ConfigurationError",
    "SnapshotLoadError",
    "DecodeError",
    "explain_exception",
]


class SnapcacheError(Exception):
    """Base class for package-specific errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Attach structured error details alongside the user-facing message."""
        super().__init__(message)
        self.details: dict[str, Any] | None = details

    def __repr__(self) -> str:  # pragma: no cover - repr stability check in tests
        """Return the exception representation with the message payload."""
        cls = self.__class__.__name__
        return f"{cls}({super().__str__()!r})"


class ValidationError(SnapcacheError):
    """Inputs or configuration failed validation."""


class InvalidArgumentError(ValidationError):
    """An argument passed to a cache operation is not acceptable."""


class InvalidKeyError(InvalidArgumentError):
    """A cache key is not a non-empty string free of reserved characters."""


class ConfigurationError(SnapcacheError):
    """Invalid or conflicting configuration."""


class SnapshotLoadError(SnapcacheError):
    """The snapshot could not be loaded; the snapshot tier is unusable."""


class DecodeError(SnapcacheError):
    """A snapshot slot could not be turned back into a runtime value."""


def explain_exception(e: Exception) -> str:
    """Return a human-readable multi-line description of an exception.

    Formats ``SnapcacheError`` instances with their structured details for
    diagnostics and logging. For other exceptions, returns the standard string
    representation.

    Examples
    --------
    >>> from snapcache.utils.exceptions import InvalidKeyError, explain_exception
    >>> e = InvalidKeyError("Cache key must not be empty", details={"key": ""})
    >>> print(explain_exception(e))
    InvalidKeyError: Cache key must not be empty
      Details: {'key': ''}
    """
    if isinstance(e, SnapcacheError):
        lines = [f"{e.__class__.__name__}: {str(e)}"]
        if e.details is not None:
            lines.append(f"  Details: {e.details}")
        return "\n".join(lines)
    return str(e)
