"""Installer-specific exceptions.

Every failure surfaces to the top-level caller as one of these. Nothing is
retried; the next run's destination reset is the recovery path.
"""


class InstallerError(Exception):
    """Base exception for installer operations."""

    def __init__(self, message: str, context: dict | None = None):
        """
        Args:
            message: What went wrong, printed by the CLI as-is
            context: Values for diagnostics, e.g. {"url": ..., "status_code": 404}
                     for a failed fetch or {"path": ...} for an unreadable file
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class MissingEnvironmentError(InstallerError):
    """Environment variable needed to locate the data directory is unset."""


class MetadataError(InstallerError):
    """Package descriptor could not be turned into metadata."""


class MetadataParseError(MetadataError):
    """Package descriptor is not well-formed TOML."""


class MetadataShapeError(MetadataError):
    """Package descriptor lacks required fields or has invalid values."""


class TransferError(InstallerError):
    """Remote fetch failed (network error or non-success response)."""


class FileSystemError(InstallerError):
    """Local read, copy, mkdir or remove failed."""


class PackageNotInstalledError(InstallerError):
    """Requested package version is not present in the local namespace."""
