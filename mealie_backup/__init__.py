"""
mealie-backup: scheduled backup maintenance for a Mealie server.

Triggers a server-side backup, downloads the newest archive and prunes old
backups on the server and on local disk.
"""

import os
import logging
from logging.handlers import RotatingFileHandler


LOG_FILE_NAME = 'mealie_backup.log'


def configure_logging(config):
    """Configure application logging"""

    # Create logs directory if it doesn't exist
    log_dir = config.log_location
    os.makedirs(log_dir, exist_ok=True)

    log_level = logging.getLevelName(config.log_level)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE_NAME),
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=[console_handler, file_handler], force=True)

    # requests/urllib3 connection chatter only at debug
    if log_level > logging.DEBUG:
        logging.getLogger('urllib3').setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured (level: {logging.getLevelName(log_level)})")
