"""
Exception types raised while importing label slabs.

Every failure is fatal to the run. Stages raise one of these and the driver
logs the failing slab before re-raising.
"""

from typing import Optional, Tuple


class LabelImportError(Exception):
    """Base class for all label import failures."""


class ConfigurationError(LabelImportError, ValueError):
    """Invalid volume geometry or source list, detected before processing."""


class SourceError(LabelImportError):
    """
    Failure reading a single source artifact.

    Args:
        message: Description of the failure
        path: Path of the artifact that failed
    """
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SourceNotFound(SourceError, FileNotFoundError):
    """The source artifact does not exist."""


class DecompressionError(SourceError):
    """The gzip stream of a source artifact is truncated or malformed."""


class SizeMismatch(SourceError):
    """The decompressed artifact does not match the expected slab geometry."""

    def __init__(self, path: str, expected: int, actual: int):
        super().__init__(
            f"Expected {expected} bytes from uncompressed gzip file {path}, got {actual} instead",
            path=path
        )
        self.expected = expected
        self.actual = actual


class TransportError(LabelImportError):
    """
    The sink rejected a tile or could not be reached.

    Args:
        message: Description of the failure
        status_code: Status reported by the sink, if any
        offset: Destination offset (x, y, z) of the tile
        retryable: True when the failure was a timeout
    """
    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 offset: Optional[Tuple[int, int, int]] = None,
                 retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.offset = offset
        self.retryable = retryable


__all__ = [
    'LabelImportError',
    'ConfigurationError',
    'SourceError',
    'SourceNotFound',
    'DecompressionError',
    'SizeMismatch',
    'TransportError'
]
