"""
Process entry point.

Exit codes: 0 on success, 1 when the backup run fails, 2 on bad configuration.
"""

import logging
import sys

from mealie_backup import configure_logging
from mealie_backup.config import ConfigError, load_config
from mealie_backup.backup.errors import BackupError
from mealie_backup.backup.executor import execute_backup


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(config)
    logger.info("Loaded environment variables")

    if config.backup_schedule:
        from mealie_backup.scheduler import init_scheduler, start_scheduler, stop_scheduler

        try:
            init_scheduler(config)
        except (ValueError, LookupError) as e:
            logger.error(f"Invalid schedule settings: {e}")
            return EXIT_CONFIG

        try:
            start_scheduler()
        except (KeyboardInterrupt, SystemExit):
            stop_scheduler()
        return EXIT_OK

    try:
        execute_backup(config)
    except BackupError as e:
        logger.error(f"Backup failed: {e}")
        return EXIT_FAILED

    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
