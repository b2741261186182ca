"""
Backup executor - orchestrates one complete backup run.

Workflow:
1. Trigger backup creation on the server
2. List server backups
3. Select the newest backup (first entry in server order)
4. Fetch a download token and download the archive
5. Save the archive to the local backup directory
6. Prune the oldest server backup once the server limit is reached
7. Prune the oldest local files beyond the local limit

Steps run strictly in order. Any failure ends the run: the error is logged
with the failing step and re-raised. Nothing already done is rolled back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from mealie_backup.config import Config
from .client import BackupClient
from .errors import BackupError, EmptyCatalogError
from .models import BackupCatalog, BackupRecord
from .retention import RetentionManager
from .storage import LocalStorage


logger = logging.getLogger(__name__)


@dataclass
class BackupRunResult:
    """Summary of a finished run."""

    backup_name: Optional[str] = None
    local_path: Optional[Path] = None
    bytes_written: int = 0
    server_deleted: Optional[str] = None
    local_deleted: List[Path] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)


class BackupExecutor:
    """
    Orchestrates the backup workflow against one server.
    """

    def __init__(self, config: Config, client: Optional[BackupClient] = None,
                 storage: Optional[LocalStorage] = None,
                 retention: Optional[RetentionManager] = None):
        """
        Initialize backup executor.

        Args:
            config: Resolved settings
            client: Transport client (default: built from config)
            storage: Local storage handler (default: built from config)
            retention: Retention manager (default: built from the above)
        """
        self.config = config
        self.client = client or BackupClient(config.api_url, config.api_key, timeout=config.request_timeout)
        self.storage = storage or LocalStorage(config.local_backups_location)
        self.retention = retention or RetentionManager(
            self.client,
            self.storage,
            max_server_backups=config.max_server_backups,
            max_local_backups=config.max_local_backups,
            accept_language=config.accept_language
        )
        self.logs = []
        self.current_step = None
        self.target = None

    def execute(self) -> BackupRunResult:
        """
        Run every step of the workflow.

        Returns:
            BackupRunResult describing what was downloaded and pruned

        Raises:
            BackupError: Subclass matching the first failure
        """
        self._log("Starting backup download...")
        result = BackupRunResult(logs=self.logs)

        try:
            self._execute_workflow(result)
        except BackupError as e:
            backup_name = e.backup_name or (self.target.name if self.target else None)
            context = f" (backup: {backup_name})" if backup_name else ""
            self._log(
                f"Backup run failed at step '{self.current_step}'{context}: "
                f"{type(e).__name__}: {e}",
                level=logging.ERROR
            )
            raise

        self._log("Backup run completed successfully")
        return result

    def _execute_workflow(self, result: BackupRunResult):
        """Execute the backup workflow steps in order."""
        self.current_step = 'trigger_creation'
        self.trigger_creation()

        self.current_step = 'enumerate_backups'
        catalog = self.enumerate_backups()

        self.current_step = 'select_target'
        self.target = self.select_target(catalog)
        result.backup_name = self.target.name
        self._log(f"Newest backup: {self.target.name} ({self.target.date}, {self.target.size})")

        self.current_step = 'materialize'
        data = self.materialize(self.target)

        self.current_step = 'persist'
        result.local_path = self.persist(self.target, data)
        result.bytes_written = len(data)
        self._log("Backup downloaded and saved successfully")

        self.current_step = 'prune_server'
        result.server_deleted = self.prune_server(catalog)

        self.current_step = 'prune_local'
        result.local_deleted = self.prune_local()

    def trigger_creation(self):
        """Ask the server to create a fresh backup."""
        response = self.client.create_backup(accept_language=self.config.accept_language)
        if response.error:
            self._log(f"Server reported an error creating backup: {response.message}", level=logging.WARNING)
        else:
            self._log(f"Backup created: {response.message}")
        return response

    def enumerate_backups(self) -> BackupCatalog:
        """
        List server backups.

        Raises:
            EmptyCatalogError: If the server has no backups
        """
        catalog = self.client.list_backups(accept_language=self.config.accept_language)
        if not catalog.backups:
            raise EmptyCatalogError("No backups found on server", operation='enumerate_backups')
        self._log(f"Server lists {len(catalog)} backups")
        return catalog

    @staticmethod
    def select_target(catalog: BackupCatalog) -> BackupRecord:
        """
        Return the newest backup.

        The server lists the most recent backup first, so this is simply the
        first entry; the other fields are not consulted.
        """
        if not catalog.backups:
            raise EmptyCatalogError("No backups found on server", operation='select_target')
        return catalog.backups[0]

    def materialize(self, record: BackupRecord) -> bytes:
        """Fetch a download token for the backup and download its bytes."""
        token = self.client.request_download_token(record.name, accept_language=self.config.accept_language)
        data = self.client.download_by_token(token)
        self._log(f"Downloaded {record.name} ({len(data) / 1024 / 1024:.2f} MB)")
        return data

    def persist(self, record: BackupRecord, data: bytes) -> Path:
        """Write the archive into the local backup directory."""
        local_path = self.storage.save(record.name, data)
        self._log(f"Stored locally: {local_path}")
        return local_path

    def prune_server(self, catalog: BackupCatalog) -> Optional[str]:
        """Delete the oldest server backup if the server limit is reached."""
        return self.retention.enforce_server_policy(catalog)

    def prune_local(self) -> List[Path]:
        """Delete the oldest local files beyond the local limit."""
        return self.retention.enforce_local_policy()

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def execute_backup(config: Config) -> BackupRunResult:
    """
    Execute one backup run with the given settings.

    Args:
        config: Resolved settings

    Returns:
        BackupRunResult of the run

    Raises:
        BackupError: If any step fails
    """
    executor = BackupExecutor(config)
    return executor.execute()
