"""
APScheduler configuration for resident mode.

When BACKUP_SCHEDULE holds a crontab expression the process stays up and
runs the backup workflow on every tick instead of exiting after one run.
"""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from mealie_backup.config import Config
from mealie_backup.backup.errors import BackupError
from mealie_backup.backup.executor import execute_backup


logger = logging.getLogger(__name__)

BACKUP_JOB_ID = 'mealie_backup'

# Global scheduler instance
scheduler = None


def init_scheduler(config: Config):
    """
    Initialize and configure APScheduler.

    Args:
        config: Resolved settings; backup_schedule must be set

    Returns:
        The configured (not yet started) scheduler

    Raises:
        ValueError: If no schedule is configured or the crontab is invalid
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    if not config.backup_schedule:
        raise ValueError("BACKUP_SCHEDULE is not set")

    trigger = CronTrigger.from_crontab(config.backup_schedule, timezone=config.scheduler_timezone)

    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Runs never overlap
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BlockingScheduler(job_defaults=job_defaults, timezone=config.scheduler_timezone)

    scheduler.add_job(
        func=_execute_backup_wrapper,
        args=[config],
        trigger=trigger,
        id=BACKUP_JOB_ID,
        name='Mealie backup',
        replace_existing=True
    )

    logger.info(f"Scheduled backup run ({config.backup_schedule}, {config.scheduler_timezone})")
    return scheduler


def start_scheduler():
    """
    Start the scheduler. Blocks until the scheduler is shut down.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    logger.info("Scheduler starting")
    scheduler.start()


def stop_scheduler():
    """Stop the APScheduler."""
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def _execute_backup_wrapper(config: Config):
    """
    Run one backup from a scheduler tick.

    A failed run is logged and the scheduler keeps going.
    """
    try:
        result = execute_backup(config)
        logger.info(f"Scheduled backup run completed: {result.backup_name}")
    except BackupError as e:
        logger.error(f"Scheduled backup run failed: {e}")
