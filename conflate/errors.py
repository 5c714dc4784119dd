"""
Exception hierarchy for conflation runs.

Anything raised from here aborts the run; the pipeline entry point turns it
into a non-zero exit status.
"""


class ConflationError(Exception):
    """Base class for all conflation errors."""


class ConfigError(ConflationError):
    """Configuration file is missing, malformed or inconsistent."""


class GeometryDecodeError(ConflationError):
    """Geometry could not be decoded from WKB, has an unexpected shape, or an overlay failed."""


class StorageError(ConflationError):
    """A LineStore read or write failed."""


class ImportFailed(ConflationError):
    """The import collaborator could not populate a collection."""
