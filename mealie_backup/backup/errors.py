"""
Error taxonomy for the backup workflow.

Every failure in a run is terminal; callers discriminate on the subclass.
"""

from typing import List, Optional


class BackupError(Exception):
    """
    Base class for backup workflow failures.

    Attributes:
        operation: Name of the step or remote call that failed
        backup_name: Backup involved, when known
    """

    def __init__(self, message: str, operation: Optional[str] = None, backup_name: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.backup_name = backup_name


class TransportError(BackupError):
    """Network failure or non-2xx HTTP status from the server."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 backup_name: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, operation=operation, backup_name=backup_name)
        self.status_code = status_code


class NotFoundError(TransportError):
    """The server does not know the requested backup."""
    pass


class DecodeError(BackupError):
    """Response body does not match the expected schema."""
    pass


class ValidationError(BackupError):
    """Server reported field violations (failed download)."""

    def __init__(self, violations: List, operation: Optional[str] = None,
                 backup_name: Optional[str] = None, status_code: Optional[int] = None):
        details = '; '.join(str(v) for v in violations) or 'no details'
        super().__init__(f"Server rejected request: {details}", operation=operation, backup_name=backup_name)
        self.violations = list(violations)
        self.status_code = status_code


class EmptyCatalogError(BackupError):
    """Server reported zero backups when one is required."""
    pass


class FilesystemError(BackupError):
    """Local directory unreadable, write failure or delete failure."""
    pass
