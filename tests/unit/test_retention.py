"""
Unit tests for retention policy management (mealie_backup/backup/retention.py).

Tests server and local pruning selection and RetentionManager.
"""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from mealie_backup.backup.errors import FilesystemError, TransportError
from mealie_backup.backup.models import EPOCH, BackupCatalog, BackupRecord, LocalBackupFile, SuccessResult
from mealie_backup.backup.retention import (
    RetentionManager,
    select_local_files_to_prune,
    select_server_backup_to_prune,
)
from mealie_backup.backup.storage import LocalStorage


def make_catalog(*entries):
    return BackupCatalog(backups=[BackupRecord(name=name, date=date, size='1 MB') for name, date in entries])


def local_file(name, timestamp):
    return LocalBackupFile(path=Path('/backups') / name,
                           created_at=datetime.fromtimestamp(timestamp, tz=timezone.utc))


class TestSelectServerBackup:
    """Test choosing the server backup to delete."""

    def test_oldest_selected_at_limit(self):
        catalog = make_catalog(('b.zip', '2024-01-02T00:00:00Z'), ('a.zip', '2024-01-01T00:00:00Z'))

        assert select_server_backup_to_prune(catalog, 2).name == 'a.zip'

    def test_oldest_selected_regardless_of_position(self):
        catalog = make_catalog(
            ('mid.zip', '2024-03-01T00:00:00Z'),
            ('old.zip', '2023-12-31T23:59:59Z'),
            ('new.zip', '2024-06-01T00:00:00Z'),
        )

        assert select_server_backup_to_prune(catalog, 1).name == 'old.zip'

    def test_nothing_selected_below_limit(self):
        catalog = make_catalog(('b.zip', '2024-01-02T00:00:00Z'), ('a.zip', '2024-01-01T00:00:00Z'))

        assert select_server_backup_to_prune(catalog, 3) is None

    def test_empty_catalog(self):
        assert select_server_backup_to_prune(BackupCatalog(), 1) is None

    def test_unparseable_date_sorts_first(self):
        catalog = make_catalog(
            ('a.zip', '1970-01-01T00:00:00Z'),
            ('broken.zip', 'garbage'),
        )

        assert select_server_backup_to_prune(catalog, 2).name == 'broken.zip'

    def test_short_fraction_is_not_treated_as_unparseable(self):
        catalog = make_catalog(
            ('new.zip', '2024-01-02T00:00:00.5Z'),
            ('old.zip', '2024-01-01T00:00:00.123456789Z'),
        )

        assert select_server_backup_to_prune(catalog, 2).name == 'old.zip'

    def test_tie_picks_first_in_catalog_order(self):
        catalog = make_catalog(
            ('x.zip', '2024-01-01T00:00:00Z'),
            ('y.zip', '2024-01-01T00:00:00Z'),
            ('z.zip', '2024-02-01T00:00:00Z'),
        )

        assert select_server_backup_to_prune(catalog, 3).name == 'x.zip'


class TestSelectLocalFiles:
    """Test choosing local files to delete."""

    def test_oldest_excess_selected(self):
        files = [local_file(f't{i}.zip', i * 100) for i in (3, 1, 5, 2, 4)]

        selected = select_local_files_to_prune(files, 3)

        assert [f.name for f in selected] == ['t1.zip', 't2.zip']

    @pytest.mark.parametrize('count', [0, 2, 3])
    def test_nothing_selected_within_limit(self, count):
        files = [local_file(f't{i}.zip', i) for i in range(count)]

        assert select_local_files_to_prune(files, 3) == []

    def test_epoch_fallback_sorts_oldest(self):
        files = [local_file('new.zip', 1000), LocalBackupFile(path=Path('/backups/unknown.zip'), created_at=EPOCH)]

        assert [f.name for f in select_local_files_to_prune(files, 1)] == ['unknown.zip']

    def test_equal_times_ordered_by_name(self):
        files = [local_file('b.zip', 10), local_file('a.zip', 10), local_file('c.zip', 20)]

        assert [f.name for f in select_local_files_to_prune(files, 1)] == ['a.zip', 'b.zip']


class TestRetentionManager:
    """Test RetentionManager against a mock client and real directory."""

    def make_manager(self, client, backup_dir, max_server=2, max_local=3):
        return RetentionManager(
            client,
            LocalStorage(str(backup_dir)),
            max_server_backups=max_server,
            max_local_backups=max_local,
            accept_language='en-US'
        )

    def test_server_policy_deletes_one(self, mock_client, backup_dir, sample_catalog):
        manager = self.make_manager(mock_client, backup_dir)

        deleted = manager.enforce_server_policy(sample_catalog)

        assert deleted == 'a.zip'
        mock_client.delete_backup.assert_called_once_with('a.zip', accept_language='en-US')

    def test_server_policy_below_limit(self, mock_client, backup_dir, sample_catalog):
        manager = self.make_manager(mock_client, backup_dir, max_server=5)

        assert manager.enforce_server_policy(sample_catalog) is None
        mock_client.delete_backup.assert_not_called()

    def test_server_policy_error_flag_is_logged_only(self, mock_client, backup_dir, sample_catalog):
        mock_client.delete_backup.return_value = SuccessResult(message='busy', error=True)
        manager = self.make_manager(mock_client, backup_dir)

        assert manager.enforce_server_policy(sample_catalog) == 'a.zip'

    def test_server_policy_propagates_transport_error(self, mock_client, backup_dir, sample_catalog):
        mock_client.delete_backup.side_effect = TransportError('HTTP 500', operation='delete_backup')
        manager = self.make_manager(mock_client, backup_dir)

        with pytest.raises(TransportError):
            manager.enforce_server_policy(sample_catalog)

    def test_local_policy_deletes_oldest(self, mock_client, backup_dir, make_local_backups):
        make_local_backups([(f't{i}.zip', 1700000000 + i * 3600) for i in range(1, 6)])
        manager = self.make_manager(mock_client, backup_dir)

        deleted = manager.enforce_local_policy()

        assert [p.name for p in deleted] == ['t1.zip', 't2.zip']
        assert sorted(p.name for p in backup_dir.iterdir()) == ['t3.zip', 't4.zip', 't5.zip']

    def test_local_policy_within_limit(self, mock_client, backup_dir, make_local_backups):
        make_local_backups([('a.zip', 1000), ('b.zip', 2000)])
        manager = self.make_manager(mock_client, backup_dir)

        assert manager.enforce_local_policy() == []
        assert len(list(backup_dir.iterdir())) == 2

    def test_local_policy_stops_at_first_failure(self, mock_client, backup_dir, make_local_backups):
        make_local_backups([(f't{i}.zip', i * 1000) for i in range(1, 6)])
        storage = MagicMock(wraps=LocalStorage(str(backup_dir)))
        storage.delete.side_effect = FilesystemError('read-only', operation='prune_local')
        manager = RetentionManager(mock_client, storage, max_server_backups=2, max_local_backups=3)

        with pytest.raises(FilesystemError):
            manager.enforce_local_policy()

        storage.delete.assert_called_once_with(backup_dir / 't1.zip')
        assert len(list(backup_dir.iterdir())) == 5
