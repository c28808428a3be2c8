"""Database models for files app."""

from datetime import datetime
from typing import Final, final, override

from django.db import models
from django.utils import timezone

# Constants for field max lengths
_UID_MAX_LENGTH: Final = 64
_NAME_MAX_LENGTH: Final = 32
_EXTENSION_MAX_LENGTH: Final = 8
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length


class Category(models.TextChoices):
    """Content category, each with its own namespace and directory."""

    NOTE = 'note', 'Note'
    CSS = 'css', 'CSS'
    FILE = 'file', 'File'

    @property
    def directory(self) -> str:
        """Top-level directory under the storage root."""
        return _CATEGORY_DIRECTORIES[self]


_CATEGORY_DIRECTORIES: Final = {
    Category.NOTE: 'notes',
    Category.CSS: 'css',
    Category.FILE: 'files',
}


class StoredFileQuerySet(models.QuerySet['StoredFile']):
    """Query helpers for the file index."""

    def active(self, now: datetime | None = None) -> 'StoredFileQuerySet':
        """Records that may still be served."""
        now = now or timezone.now()
        return self.filter(
            models.Q(expires_at__isnull=True) | models.Q(expires_at__gt=now),
        )

    def expired(self, now: datetime | None = None) -> 'StoredFileQuerySet':
        """Records past their expiry, oldest first."""
        now = now or timezone.now()
        return self.filter(expires_at__lte=now).order_by('expires_at')

    def owned_by(self, uid: str) -> 'StoredFileQuerySet':
        """Records belonging to a single user."""
        return self.filter(owner_uid=uid)


@final
class StoredFile(models.Model):
    """Index record for a content-addressed file on disk.

    The record is the source of truth. The file under the storage root is
    a cache of its bytes, at a path derived from category, name, extension
    and the configured shard depth:
    ``{root}/{notes|css|files}/[{c0}/[{c1}/]]{name}.{extension}``.
    """

    name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='Base-36 name derived from the content',
    )

    category = models.CharField(
        max_length=8,
        choices=Category.choices,
    )

    extension = models.CharField(
        max_length=_EXTENSION_MAX_LENGTH,
        help_text='Lowercase file extension without dot',
    )

    owner_uid = models.CharField(
        max_length=_UID_MAX_LENGTH,
        db_index=True,
        help_text='UID of the uploading user',
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        help_text='SHA256 of the content, used to tell dedup hits from collisions',
    )

    created_at = models.DateTimeField(default=timezone.now)

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text='After this moment the file is no longer served',
    )

    objects = StoredFileQuerySet.as_manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Stored file'  # type: ignore[mutable-override]
        verbose_name_plural = 'Stored files'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        constraints = [
            # Names are unique inside their category namespace
            models.UniqueConstraint(
                fields=['category', 'name'],
                name='files_category_name_unique',
            ),
        ]

        indexes = [
            models.Index(
                fields=['owner_uid', 'category', '-created_at'],
                name='files_owner_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.category}:{self.filename}'

    @property
    def filename(self) -> str:
        """On-disk filename, e.g. ``abcd1234.html``."""
        return f'{self.name}.{self.extension}'

    @property
    def storage_name(self) -> str:
        """Unsharded storage name, e.g. ``notes/abcd1234.html``."""
        return f'{Category(self.category).directory}/{self.filename}'

    def is_servable(self, now: datetime | None = None) -> bool:
        """Check whether the record is still active.

        Args:
            now: Reference moment, defaults to the current time.

        Returns:
            False once ``expires_at`` has been reached.
        """
        if self.expires_at is None:
            return True
        return self.expires_at > (now or timezone.now())
