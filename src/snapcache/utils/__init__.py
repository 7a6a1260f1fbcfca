"""Shared utilities: exceptions and configuration helpers."""

from .exceptions import (
    ConfigurationError,
    DecodeError,
    InvalidArgumentError,
    InvalidKeyError,
    SnapcacheError,
    SnapshotLoadError,
    ValidationError,
    explain_exception,
)

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "SnapcacheError",
    "SnapshotLoadError",
    "ValidationError",
    "explain_exception",
]
