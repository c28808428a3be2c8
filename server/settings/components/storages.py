"""Location and public URL of the local sharded file store.

User content lives on the local filesystem under ``SHARE_STORAGE_ROOT``,
split into ``notes/``, ``css/`` and ``files/`` with optional shard
directories. These values are read once by ``ShareSettings.from_django``;
the storage itself is built by the share context, not through ``STORAGES``.
"""

from server.settings.components import BASE_DIR, config

SHARE_STORAGE_ROOT = config(
    'SHARE_STORAGE_ROOT',
    default=str(BASE_DIR.joinpath('userfiles')),
)

SHARE_BASE_URL = config('SHARE_BASE_URL', default='http://localhost:8000')

SHARE_SHARD_DEPTH = config('SHARE_SHARD_DEPTH', cast=int, default=0)
