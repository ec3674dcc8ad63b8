"""
Core building blocks shared by the comparison tool.
"""

from .exceptions import (
    AccountDbCompareError,
    ArchiverUnavailableError,
    ConfigurationError,
    MalformedNumberError,
    NodesFolderNotFoundError,
    NodeStoreError,
    NormalizeError,
    UnrecognizedShapeError,
)

__all__ = [
    "AccountDbCompareError",
    "ArchiverUnavailableError",
    "ConfigurationError",
    "MalformedNumberError",
    "NodesFolderNotFoundError",
    "NodeStoreError",
    "NormalizeError",
    "UnrecognizedShapeError",
]
