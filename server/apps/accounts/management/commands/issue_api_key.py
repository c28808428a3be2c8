"""Management command to provision or rotate an API key."""

from typing import Any

from django.core.management.base import BaseCommand, CommandError
from django.db import IntegrityError

from server.apps.accounts.models import UserCredential
from server.apps.files.context import get_context


class Command(BaseCommand):
    """Issue a new API key and print it once."""

    help = 'Provision a new user credential, or rotate an existing one'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--uid',
            type=str,
            default=None,
            help='User identifier (default: random)',
        )
        parser.add_argument(
            '--rotate',
            action='store_true',
            help='Replace the key of an existing user',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the user is unknown or already exists.
        """
        context = get_context()
        store = context.credential_store
        uid = options['uid']

        if options['rotate']:
            if not uid:
                raise CommandError('--rotate requires --uid')
            try:
                issued = store.rotate(uid)
            except UserCredential.DoesNotExist as exc:
                raise CommandError(f'Unknown user: {uid}') from exc
        else:
            try:
                issued = store.provision(uid)
            except IntegrityError as exc:
                raise CommandError(f'User already exists: {uid}') from exc

        self.stdout.write(f'uid: {issued.uid}')
        self.stdout.write(f'api_key: {issued.api_key}')
        self.stdout.write(f'salt: {context.settings.signing_salt}')
        self.stdout.write(
            self.style.WARNING('The API key is shown only once.'),
        )
