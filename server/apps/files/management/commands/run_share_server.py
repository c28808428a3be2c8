"""Django management command to run the share server."""

import logging
import os
import sys
from typing import Any, Final, final, override

from cheroot.wsgi import Server as WSGIServer
from django.conf import settings
from django.core.management.base import BaseCommand
from django.core.wsgi import get_wsgi_application

from server.apps.files.context import get_context
from server.apps.files.logic.expiration import PeriodicSweeper

logger = logging.getLogger(__name__)

# Environment variable to indicate we're in a reload subprocess
_RELOAD_ENV_VAR: Final = 'SHARE_RELOAD_SUBPROCESS'

_DEFAULT_THREADS: Final = 10


@final
class Command(BaseCommand):
    """Run the share server using cheroot WSGI server."""

    help = 'Run the share server and the periodic expiration sweeper'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--host',
            type=str,
            default=None,
            help='Host to bind to (default: from settings)',
        )
        parser.add_argument(
            '--port',
            type=int,
            default=None,
            help='Port to bind to (default: from settings)',
        )
        parser.add_argument(
            '--threads',
            type=int,
            default=_DEFAULT_THREADS,
            help=f'Worker threads (default: {_DEFAULT_THREADS})',
        )
        parser.add_argument(
            '--no-sweeper',
            action='store_true',
            default=False,
            help='Do not start the periodic expiration sweeper',
        )
        parser.add_argument(
            '--reload',
            action='store_true',
            default=False,
            help='Enable auto-reload on code changes (development only)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments.
            options: Keyword arguments from command line.
        """
        use_reload = options['reload']
        is_subprocess = os.environ.get(_RELOAD_ENV_VAR) == 'true'

        if use_reload and not is_subprocess:
            # Parent process: run file watcher
            self._run_with_reload(options)
        else:
            # Child process or no reload: run server directly
            self._run_server(options)

    def _run_server(self, options: dict[str, Any]) -> None:
        """Run the HTTP server and the sweeper until interrupted.

        Args:
            options: Command options.
        """
        host = options['host'] or settings.SHARE_HOST
        port = options['port'] or settings.SHARE_PORT
        context = get_context()

        self.stdout.write(
            self.style.SUCCESS(f'Starting share server on {host}:{port}'),
        )

        server = WSGIServer(
            bind_addr=(host, port),
            wsgi_app=get_wsgi_application(),
            numthreads=options['threads'],
        )
        server.server_name = 'ShareNote'

        sweeper = None
        if not options['no_sweeper']:
            sweeper = PeriodicSweeper(
                context.sweeper,
                context.settings.sweep_interval,
            )
            sweeper.start()

        try:
            logger.info('Share server starting on %s:%d', host, port)
            server.start()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('\nShutting down...'))
        finally:
            server.stop()
            if sweeper is not None:
                sweeper.stop()
            self.stdout.write(self.style.SUCCESS('Share server stopped'))

    def _run_with_reload(self, options: dict[str, Any]) -> None:
        """Run server with auto-reload on file changes.

        Uses watchfiles to monitor Python files and restart the server
        when changes are detected.

        Args:
            options: Command options.
        """
        try:
            import watchfiles  # noqa: PLC0415
        except ImportError:
            self.stderr.write(
                self.style.ERROR(
                    'watchfiles is required for --reload. '
                    'Install with: pip install -e ".[dev]"',
                ),
            )
            sys.exit(1)

        self.stdout.write(
            self.style.SUCCESS('Starting share server with auto-reload enabled...'),
        )

        cmd_parts = [sys.executable, '-m', 'django', 'run_share_server']
        if options['host']:
            cmd_parts.extend(['--host', options['host']])
        if options['port']:
            cmd_parts.extend(['--port', str(options['port'])])
        cmd_parts.extend(['--threads', str(options['threads'])])
        if options['no_sweeper']:
            cmd_parts.append('--no-sweeper')
        # Don't pass --reload to subprocess
        cmd = ' '.join(cmd_parts)

        def watch_filter(  # noqa: WPS430
            change: watchfiles.Change,
            path: str,
        ) -> bool:
            """Filter to only watch Python files."""
            return path.endswith('.py')

        # Set env var so subprocess knows it's being managed by reloader
        os.environ[_RELOAD_ENV_VAR] = 'true'

        watchfiles.run_process(
            str(settings.BASE_DIR / 'server'),
            target=cmd,
            target_type='command',
            watch_filter=watch_filter,
            callback=self._on_reload,
        )

    def _on_reload(self, changes: set[tuple[Any, str]]) -> None:
        """Callback when files change and reload is triggered.

        Args:
            changes: Set of (change_type, path) tuples.
        """
        for change_type, path in changes:
            self.stdout.write(
                self.style.WARNING(f'Detected {change_type.name}: {path}'),
            )
        self.stdout.write(self.style.SUCCESS('Reloading share server...'))
