"""Explicit wiring of the share server components.

Settings are read once into ``ShareSettings`` and every component gets its
collaborators through ``ShareContext``. Tests build their own context
instead of patching module globals.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, final

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured

from server.apps.accounts.logic.credential_store import CredentialStore
from server.apps.files.infrastructure.cache_purge import (
    CachePurger,
    CloudflareCachePurger,
    NullCachePurger,
)
from server.apps.files.infrastructure.locks import NameLocks
from server.apps.files.infrastructure.paths import validate_shard_depth
from server.apps.files.infrastructure.storage import ShardedFileStorage
from server.apps.files.infrastructure.validation import ContentValidator
from server.apps.files.logic.expiration import ExpirationSweeper
from server.apps.files.logic.file_operations import FileStore


@final
@dataclass(frozen=True, slots=True)
class ShareSettings:
    """Validated share server configuration."""

    storage_root: Path
    base_url: str
    signing_salt: str
    max_upload_bytes: int = 100 * 1024 * 1024
    shard_depth: int = 0
    default_ttl: int | None = None
    max_ttl: int | None = None
    sweep_interval: int = 300
    upload_key: str = ''
    cloudflare_zone_id: str = ''
    cloudflare_api_token: str = ''

    def __post_init__(self) -> None:
        """Reject values the components cannot work with.

        Raises:
            ImproperlyConfigured: On the first invalid value.
        """
        try:
            validate_shard_depth(self.shard_depth)
        except ValueError as exc:
            raise ImproperlyConfigured(str(exc)) from exc

        if self.max_upload_bytes <= 0:
            raise ImproperlyConfigured('SHARE_MAX_UPLOAD_BYTES must be positive')
        if self.sweep_interval <= 0:
            raise ImproperlyConfigured('SHARE_SWEEP_INTERVAL must be positive')
        if self.default_ttl is not None and self.default_ttl <= 0:
            raise ImproperlyConfigured('SHARE_DEFAULT_TTL must be positive')
        if self.max_ttl is not None and self.max_ttl <= 0:
            raise ImproperlyConfigured('SHARE_MAX_TTL must be positive')
        if not self.signing_salt:
            raise ImproperlyConfigured('SHARE_SIGNING_SALT must be set')

    @classmethod
    def from_django(cls, settings: Any) -> 'ShareSettings':
        """Read the ``SHARE_*`` values from Django settings."""
        return cls(
            storage_root=Path(settings.SHARE_STORAGE_ROOT),
            base_url=settings.SHARE_BASE_URL.rstrip('/'),
            signing_salt=settings.SHARE_SIGNING_SALT,
            max_upload_bytes=settings.SHARE_MAX_UPLOAD_BYTES,
            shard_depth=settings.SHARE_SHARD_DEPTH,
            default_ttl=settings.SHARE_DEFAULT_TTL,
            max_ttl=settings.SHARE_MAX_TTL,
            sweep_interval=settings.SHARE_SWEEP_INTERVAL,
            upload_key=settings.SHARE_UPLOAD_KEY,
            cloudflare_zone_id=settings.SHARE_CLOUDFLARE_ZONE_ID,
            cloudflare_api_token=settings.SHARE_CLOUDFLARE_API_TOKEN,
        )

    @property
    def purges_cache(self) -> bool:
        """Whether Cloudflare credentials are configured."""
        return bool(self.cloudflare_zone_id and self.cloudflare_api_token)


@final
@dataclass(frozen=True, slots=True)
class ShareContext:
    """All long-lived share server components."""

    settings: ShareSettings
    credential_store: CredentialStore
    file_store: FileStore
    sweeper: ExpirationSweeper
    cache_purger: CachePurger


def build_context(
    share_settings: ShareSettings,
    cache_purger: CachePurger | None = None,
) -> ShareContext:
    """Build every component from validated settings.

    Args:
        share_settings: Validated configuration.
        cache_purger: Overrides the purger chosen from the settings.

    Returns:
        A ready context.
    """
    storage = ShardedFileStorage(
        location=share_settings.storage_root,
        base_url=f'{share_settings.base_url}/',
        shard_depth=share_settings.shard_depth,
    )
    file_store = FileStore(
        storage=storage,
        validator=ContentValidator(share_settings.max_upload_bytes),
        locks=NameLocks(),
        default_ttl=share_settings.default_ttl,
        max_ttl=share_settings.max_ttl,
    )

    if cache_purger is None:
        if share_settings.purges_cache:
            cache_purger = CloudflareCachePurger(
                zone_id=share_settings.cloudflare_zone_id,
                api_token=share_settings.cloudflare_api_token,
            )
        else:
            cache_purger = NullCachePurger()

    return ShareContext(
        settings=share_settings,
        credential_store=CredentialStore(share_settings.signing_salt),
        file_store=file_store,
        sweeper=ExpirationSweeper(file_store, cache_purger),
        cache_purger=cache_purger,
    )


def get_context() -> ShareContext:
    """Context built by the files app at startup."""
    return apps.get_app_config('files').context
