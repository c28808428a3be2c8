"""Management command to reclaim expired files."""

import logging
from typing import Any, Final

from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.files.context import get_context

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Physically delete files whose expiry has passed."""

    help = 'Delete expired files and their index records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max files to process (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the sweep.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        sweeper = get_context().sweeper
        now = timezone.now()

        self.stdout.write(f'Looking for files expired before {now}')

        if dry_run:
            expired = sweeper.expired(now, batch_size)
            for record in expired:
                self.stdout.write(
                    f'Would delete: {record.storage_name} '
                    f'(owner: {record.owner_uid}, '
                    f'expired: {record.expires_at})',
                )
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {len(expired)} files'),
            )
            return

        report = sweeper.sweep(now, batch_size)
        for name in report.failed:
            self.stderr.write(f'Failed to delete {name}')

        self.stdout.write(
            self.style.SUCCESS(
                f'Purged {report.purged_count} files, '
                f'{report.failed_count} failed',
            ),
        )
