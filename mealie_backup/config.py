"""
Configuration for mealie-backup.

Settings are read from the environment once at process start (optionally
seeded from .env files) and handed around as an immutable Config value.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_ACCEPT_LANGUAGE = 'en-US'
DEFAULT_LOG_LOCATION = 'logs'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_TIMEZONE = 'UTC'

USER_ENV_FILE = Path.home() / '.config' / 'mealie-backup' / '.env'


class ConfigError(Exception):
    """Raised when a required setting is missing or invalid."""
    pass


@dataclass(frozen=True)
class Config:
    """Resolved runtime settings."""

    api_url: str
    api_key: str
    max_server_backups: int
    max_local_backups: int
    local_backups_location: str
    log_location: str = DEFAULT_LOG_LOCATION
    log_level: str = DEFAULT_LOG_LEVEL
    accept_language: Optional[str] = DEFAULT_ACCEPT_LANGUAGE
    request_timeout: Optional[float] = None
    backup_schedule: Optional[str] = None
    scheduler_timezone: str = DEFAULT_TIMEZONE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """
        Build a Config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Config instance

        Raises:
            ConfigError: If a required variable is missing or malformed
        """
        if environ is None:
            environ = os.environ

        local_dir = _require(environ, 'LOCAL_BACKUPS_LOCATION')
        if not os.path.isdir(local_dir):
            raise ConfigError(f"LOCAL_BACKUPS_LOCATION is not a directory: {local_dir}")
        if not os.access(local_dir, os.W_OK):
            raise ConfigError(f"LOCAL_BACKUPS_LOCATION is not writable: {local_dir}")

        log_level = environ.get('LOG_LEVEL', DEFAULT_LOG_LEVEL).strip().upper()
        if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigError(f"LOG_LEVEL must be a logging level name, got {log_level!r}")

        return cls(
            api_url=_require(environ, 'API_URL').rstrip('/'),
            api_key=_require(environ, 'API_KEY'),
            max_server_backups=_positive_int(environ, 'MAX_SERVER_BACKUPS'),
            max_local_backups=_positive_int(environ, 'MAX_LOCAL_BACKUPS'),
            local_backups_location=local_dir,
            log_location=environ.get('LOG_LOCATION') or DEFAULT_LOG_LOCATION,
            log_level=log_level,
            accept_language=environ.get('ACCEPT_LANGUAGE', DEFAULT_ACCEPT_LANGUAGE) or None,
            request_timeout=_optional_timeout(environ, 'REQUEST_TIMEOUT'),
            backup_schedule=environ.get('BACKUP_SCHEDULE') or None,
            scheduler_timezone=environ.get('SCHEDULER_TIMEZONE') or DEFAULT_TIMEZONE,
        )


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Load .env files into the environment, then build the Config.

    The user config file is read first, then the working directory (or
    env_file when given). Variables already set in the environment win.
    """
    if USER_ENV_FILE.exists():
        load_dotenv(USER_ENV_FILE)
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return Config.from_env()


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name, '').strip()
    if not value:
        raise ConfigError(f"{name} must be set")
    return value


def _positive_int(environ: Mapping[str, str], name: str) -> int:
    raw = _require(environ, name)
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {value}")
    return value


def _optional_timeout(environ: Mapping[str, str], name: str) -> Optional[float]:
    raw = environ.get(name, '').strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be greater than zero, got {value}")
    return value
