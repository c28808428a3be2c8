"""Django app configuration for files app."""

from typing import TYPE_CHECKING, override

from django.apps import AppConfig
from django.conf import settings

if TYPE_CHECKING:
    from server.apps.files.context import ShareContext


class FilesConfig(AppConfig):
    """Configuration for files app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.files'
    verbose_name = 'Files'

    context: 'ShareContext'

    @override
    def ready(self) -> None:
        """Build the share context once the app registry is loaded."""
        from server.apps.files.context import (  # noqa: PLC0415
            ShareSettings,
            build_context,
        )

        self.context = build_context(ShareSettings.from_django(settings))
