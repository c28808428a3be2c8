"""Django admin configuration for accounts app."""

from django.contrib import admin
from django.http import HttpRequest

from server.apps.accounts.models import UserCredential


@admin.register(UserCredential)
class UserCredentialAdmin(admin.ModelAdmin[UserCredential]):
    """Admin interface for credentials. Keys are issued by ``issue_api_key``."""

    list_display = [
        'uid',
        'created_at',
        'rotated_at',
    ]

    search_fields = [
        'uid',
    ]

    readonly_fields = [
        'uid',
        'key_hash',
        'created_at',
        'rotated_at',
    ]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Credentials are never created from the admin."""
        return False
