"""
Backup module for mealie-backup.

This module handles the backup workflow:
- Remote calls to the Mealie backup API
- Local archive storage
- Retention policy enforcement on server and disk
- Execution orchestration
"""

from .client import BackupClient
from .errors import (
    BackupError,
    DecodeError,
    EmptyCatalogError,
    FilesystemError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from .executor import BackupExecutor, BackupRunResult, execute_backup
from .models import BackupCatalog, BackupRecord, FieldViolation, LocalBackupFile, SuccessResult
from .retention import RetentionManager
from .storage import LocalStorage

__all__ = [
    'BackupClient',
    'BackupExecutor',
    'BackupRunResult',
    'execute_backup',
    'LocalStorage',
    'RetentionManager',
    'BackupCatalog',
    'BackupRecord',
    'FieldViolation',
    'LocalBackupFile',
    'SuccessResult',
    'BackupError',
    'DecodeError',
    'EmptyCatalogError',
    'FilesystemError',
    'NotFoundError',
    'TransportError',
    'ValidationError',
]
