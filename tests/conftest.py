"""
Shared pytest fixtures for mealie-backup tests.

This module provides fixtures for:
- Config pointing at a temporary backup directory
- Fake HTTP responses for the requests layer
- Mock transport client and sample catalogs
- Local backup files with controlled timestamps
"""

import os
from unittest.mock import MagicMock

import pytest

from mealie_backup.config import Config
from mealie_backup.backup.client import BackupClient
from mealie_backup.backup.models import BackupCatalog, SuccessResult


BASE_URL = 'https://mealie.test'
API_KEY = 'test-api-key'


@pytest.fixture
def backup_dir(tmp_path):
    """Empty local backup directory."""
    path = tmp_path / 'backups'
    path.mkdir()
    return path


@pytest.fixture
def config(backup_dir, tmp_path):
    """
    Config with small retention limits.

    max_server_backups=2, max_local_backups=3
    """
    return Config(
        api_url=BASE_URL,
        api_key=API_KEY,
        max_server_backups=2,
        max_local_backups=3,
        local_backups_location=str(backup_dir),
        log_location=str(tmp_path / 'logs'),
    )


@pytest.fixture
def make_response():
    """
    Factory for fake requests.Response objects.

    json_body=None with text set makes .json() raise ValueError.
    """
    def _make(status_code=200, json_body=None, content=b'', text=''):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.reason = 'Reason'
        response.content = content
        response.text = text
        if json_body is None:
            response.json.side_effect = ValueError('Expecting value')
        else:
            response.json.return_value = json_body
        return response

    return _make


@pytest.fixture
def catalog_payload():
    """Raw list response with the newest backup first."""
    return {
        'imports': [
            {'name': 'b.zip', 'date': '2024-01-02T00:00:00Z', 'size': '1.2 MB'},
            {'name': 'a.zip', 'date': '2024-01-01T00:00:00Z', 'size': '1.1 MB'},
        ],
        'templates': ['recipes.md'],
    }


@pytest.fixture
def sample_catalog(catalog_payload):
    return BackupCatalog.from_dict(catalog_payload)


@pytest.fixture
def mock_client(sample_catalog):
    """
    Mock BackupClient that serves sample_catalog and a small archive.
    """
    client = MagicMock(spec=BackupClient)
    client.create_backup.return_value = SuccessResult(message='Backup created', error=False)
    client.list_backups.return_value = sample_catalog
    client.request_download_token.return_value = 'token-123'
    client.download_by_token.return_value = b'PK\x03\x04archive-bytes'
    client.delete_backup.return_value = SuccessResult(message='Backup deleted', error=False)
    return client


@pytest.fixture
def make_local_backups(backup_dir):
    """
    Create files in backup_dir with given timestamps.

    Takes a list of (name, epoch_seconds); returns the created paths.
    """
    def _make(entries):
        paths = []
        for name, timestamp in entries:
            path = backup_dir / name
            path.write_bytes(name.encode())
            os.utime(path, (timestamp, timestamp))
            paths.append(path)
        return paths

    return _make
