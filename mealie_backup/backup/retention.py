"""
Retention policy enforcement for backups.

Keeps the number of backups on the server and in the local backup directory
under their configured limits. Both sides are pruned oldest-first; the two
limits are independent.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from .client import BackupClient
from .models import BackupCatalog, BackupRecord, LocalBackupFile
from .storage import LocalStorage


logger = logging.getLogger(__name__)

# Sort key for server backups whose date cannot be parsed
OLDEST_POSSIBLE = datetime.min.replace(tzinfo=timezone.utc)


def server_sort_key(record: BackupRecord) -> datetime:
    return record.created_at or OLDEST_POSSIBLE


def select_server_backup_to_prune(catalog: BackupCatalog, max_server_backups: int) -> Optional[BackupRecord]:
    """
    Pick the server backup to delete, if any.

    Once the catalog holds max_server_backups or more entries, the one with
    the earliest date is chosen. Unparseable dates count as older than any
    real date. Among equal dates the first in catalog order wins.

    Args:
        catalog: Backups listed by the server
        max_server_backups: Server-side limit

    Returns:
        The backup to delete, or None when under the limit
    """
    if not catalog.backups or len(catalog.backups) < max_server_backups:
        return None
    return min(catalog.backups, key=server_sort_key)


def select_local_files_to_prune(files: Sequence[LocalBackupFile], max_local_backups: int) -> List[LocalBackupFile]:
    """
    Pick the local files to delete, oldest first.

    Returns the len(files) - max_local_backups oldest files by creation time,
    or an empty list when the limit is not exceeded. Equal times are ordered
    by file name.
    """
    excess = len(files) - max_local_backups
    if excess <= 0:
        return []
    ordered = sorted(files, key=lambda f: (f.created_at, f.name))
    return ordered[:excess]


class RetentionManager:
    """
    Applies the server and local retention limits for one run.
    """

    def __init__(self, client: BackupClient, storage: LocalStorage,
                 max_server_backups: int, max_local_backups: int,
                 accept_language: Optional[str] = None):
        self.client = client
        self.storage = storage
        self.max_server_backups = max_server_backups
        self.max_local_backups = max_local_backups
        self.accept_language = accept_language

    def enforce_server_policy(self, catalog: BackupCatalog) -> Optional[str]:
        """
        Delete at most one backup from the server.

        Args:
            catalog: Catalog listed earlier in the run

        Returns:
            Name of the deleted backup, or None

        Raises:
            TransportError: If the delete call fails
            DecodeError: If the delete response is malformed
        """
        oldest = select_server_backup_to_prune(catalog, self.max_server_backups)
        if oldest is None:
            logger.info(
                f"Server holds {len(catalog)} backups (limit {self.max_server_backups}), nothing to prune"
            )
            return None

        result = self.client.delete_backup(oldest.name, accept_language=self.accept_language)
        if result.error:
            logger.warning(f"Server reported an error deleting {oldest.name}: {result.message}")
        logger.info(f"Deleted oldest backup: {oldest.name}")
        return oldest.name

    def enforce_local_policy(self) -> List[Path]:
        """
        Delete the oldest local files beyond the local limit.

        Deletion stops at the first failure.

        Returns:
            Paths deleted, in deletion order

        Raises:
            FilesystemError: If listing or any deletion fails
        """
        files = self.storage.list_files()
        to_delete = select_local_files_to_prune(files, self.max_local_backups)

        if not to_delete:
            logger.info(
                f"Local directory holds {len(files)} backups (limit {self.max_local_backups}), nothing to prune"
            )
            return []

        deleted = []
        for file_info in to_delete:
            self.storage.delete(file_info.path)
            deleted.append(file_info.path)
            logger.info(f"Deleted local backup: {file_info.path}")

        return deleted
