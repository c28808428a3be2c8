"""Database models for accounts app."""

from typing import Final, final, override

from django.db import models
from django.utils import timezone

# Constants for field max lengths
_UID_MAX_LENGTH: Final = 64
_KEY_HASH_MAX_LENGTH: Final = 64  # SHA256 hex length


@final
class UserCredential(models.Model):
    """Per-user API key credential.

    Only a one-way hash of the API key is stored. Clients prove possession
    of the key by signing a per-request nonce, see
    ``server.apps.accounts.logic.signing``.
    """

    uid = models.CharField(
        max_length=_UID_MAX_LENGTH,
        primary_key=True,
        help_text='Opaque user identifier sent in x-sharenote-id',
    )

    key_hash = models.CharField(
        max_length=_KEY_HASH_MAX_LENGTH,
        help_text='SHA256 of salt + API key',
    )

    created_at = models.DateTimeField(default=timezone.now)

    rotated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text='Last time the key was replaced',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'User credential'  # type: ignore[mutable-override]
        verbose_name_plural = 'User credentials'  # type: ignore[mutable-override]
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.uid
