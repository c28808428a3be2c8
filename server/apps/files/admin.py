"""Django admin configuration for files app."""

from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from server.apps.files.models import StoredFile


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(StoredFile)
class StoredFileAdmin(admin.ModelAdmin[StoredFile]):
    """Admin interface for the file index.

    Records are read-only here: names and checksums are derived from the
    content, and removal goes through the sweeper or the delete endpoint.
    """

    list_display = [
        'filename_display',
        'category',
        'owner_uid',
        'size_display',
        'created_at',
        'expires_at',
        'status_display',
    ]

    list_filter = [
        'category',
        'extension',
        'created_at',
    ]

    search_fields = [
        'name',
        'owner_uid',
        'checksum_sha256',
    ]

    readonly_fields = [
        'name',
        'category',
        'extension',
        'owner_uid',
        'size_bytes',
        'checksum_sha256',
        'created_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('name', 'category', 'extension', 'owner_uid'),
        }),
        ('Content', {
            'fields': ('size_bytes', 'checksum_sha256'),
        }),
        ('Lifetime', {
            'fields': ('created_at', 'expires_at'),
        }),
    )

    def filename_display(self, obj: StoredFile) -> str:
        """Display the on-disk filename.

        Args:
            obj: StoredFile instance.

        Returns:
            Name with extension.
        """
        return obj.filename
    filename_display.short_description = 'Filename'  # type: ignore[attr-defined]

    def size_display(self, obj: StoredFile) -> str:
        """Display file size in human-readable format."""
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def status_display(self, obj: StoredFile) -> str:
        """Display whether the file is still served.

        Args:
            obj: StoredFile instance.

        Returns:
            HTML formatted status indicator.
        """
        if obj.is_servable(timezone.now()):
            color = '#28a745'  # Green - served
            status = 'Active'
        else:
            color = '#dc3545'  # Red - awaiting sweep
            status = 'Expired'

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]
