#!/usr/bin/env python3
"""Run one Mealie backup (or stay resident when BACKUP_SCHEDULE is set)"""
import sys

from mealie_backup.cli import main

if __name__ == '__main__':
    sys.exit(main())
