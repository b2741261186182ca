"""
Local storage for downloaded backup archives.

Archives are kept flat in one directory, one file per server backup name:
{base_path}/{backup_name}
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from .errors import FilesystemError
from .models import EPOCH, LocalBackupFile


PARTIAL_SUFFIX = '.part'


def file_created_at(path: Path) -> datetime:
    """
    Best available creation time of a file.

    Uses st_birthtime where the platform reports it and the modification
    time elsewhere (archives are written once, so the two agree). Falls back
    to the epoch if the file cannot be stat'ed.
    """
    try:
        stat = path.stat()
    except OSError:
        return EPOCH

    timestamp = getattr(stat, 'st_birthtime', None)
    if timestamp is None:
        timestamp = stat.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _is_partial(path: Path) -> bool:
    return path.name.startswith('.') and path.name.endswith(PARTIAL_SUFFIX)


class LocalStorage:
    """
    Handler for storing backups in a local directory.
    """

    def __init__(self, base_path: str):
        """
        Initialize local storage handler.

        Args:
            base_path: Directory that holds the backup archives
        """
        self.base_path = Path(base_path)

        # Create base directory if it doesn't exist
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create local storage directory: {e}", operation='init') from e

    def save(self, backup_name: str, data: bytes) -> Path:
        """
        Write an archive to {base_path}/{backup_name}.

        The bytes go to a hidden temporary file first and are renamed into
        place once fully written, so a crash never leaves a truncated file
        under the final name. An existing file of that name is replaced.

        Args:
            backup_name: Server backup name, used as the file name
            data: Archive contents

        Returns:
            Path of the stored file

        Raises:
            FilesystemError: If the name is unsafe or the write fails
        """
        dest_path = self.get_full_path(backup_name)
        temp_path = None

        try:
            with tempfile.NamedTemporaryFile(
                dir=self.base_path,
                prefix=f".{backup_name}.",
                suffix=PARTIAL_SUFFIX,
                delete=False
            ) as temp_file:
                temp_path = temp_file.name
                temp_file.write(data)
                temp_file.flush()
                os.fsync(temp_file.fileno())

            os.replace(temp_path, dest_path)
            return dest_path

        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            if isinstance(e, PermissionError):
                message = f"Permission denied writing to {dest_path}: {e}"
            else:
                message = f"Failed to write {dest_path}: {e}"
            raise FilesystemError(message, operation='persist', backup_name=backup_name) from e

    def delete(self, path: Path):
        """
        Delete a file from local storage.

        Args:
            path: Path of the file to delete

        Raises:
            FilesystemError: If deletion fails
        """
        full_path = Path(path)

        try:
            if full_path.exists():
                full_path.unlink()
        except PermissionError as e:
            raise FilesystemError(f"Permission denied deleting {full_path}: {e}",
                                  operation='prune_local', backup_name=full_path.name) from e
        except OSError as e:
            raise FilesystemError(f"Failed to delete local file {full_path}: {e}",
                                  operation='prune_local', backup_name=full_path.name) from e

    def list_files(self) -> List[LocalBackupFile]:
        """
        List regular files in the backup directory (not recursive).

        Hidden partial files left by an interrupted save() are not backups
        and are skipped.

        Returns:
            LocalBackupFile entries sorted by name

        Raises:
            FilesystemError: If the directory cannot be read
        """
        try:
            entries = sorted(self.base_path.iterdir())
        except OSError as e:
            raise FilesystemError(f"Failed to list local files in {self.base_path}: {e}",
                                  operation='prune_local') from e

        return [
            LocalBackupFile(path=entry, created_at=file_created_at(entry))
            for entry in entries
            if entry.is_file() and not _is_partial(entry)
        ]

    def get_full_path(self, backup_name: str) -> Path:
        """
        Get the file path for a backup name.

        Raises:
            FilesystemError: If the name would escape the backup directory
        """
        if (not backup_name or backup_name in ('.', '..')
                or '/' in backup_name or os.sep in backup_name
                or (os.altsep and os.altsep in backup_name)):
            raise FilesystemError(f"Unsafe backup file name: {backup_name!r}",
                                  operation='persist', backup_name=backup_name)
        return self.base_path / backup_name
