"""Custom storage backend for the local sharded file store."""

import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, Final, TypeVar, final, override

from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

from server.apps.files.infrastructure.paths import PathResolver
from server.apps.files.models import Category

logger = logging.getLogger(__name__)

_T = TypeVar('_T')

_DIRECTORY_CATEGORIES: Final = {category.directory: category for category in Category}

_DEFAULT_FILE_MODE: Final = 0o644


@final
class ShardedFileStorage(FileSystemStorage):
    """Filesystem storage for content-addressed user files.

    Extends Django's FileSystemStorage with:
    - Shard directories between the category directory and the file
    - Crash-safe writes (temporary file, fsync, atomic rename)
    - Overwrites instead of renaming on conflict (names are content-derived)
    - One retry for failed writes and deletes, with logging

    Storage names are unsharded, e.g. ``notes/abcd1234.html``. Shard
    directories only appear in physical paths and public URLs.
    """

    def __init__(
        self,
        location: str | Path | None = None,
        base_url: str | None = None,
        shard_depth: int = 0,
        **kwargs: Any,
    ) -> None:
        """Initialize the storage.

        Args:
            location: Storage root directory.
            base_url: Public URL prefix of the storage root.
            shard_depth: 0, 1 or 2 shard directories.
            kwargs: Passed to FileSystemStorage.
        """
        super().__init__(location=location, base_url=base_url, **kwargs)
        self._resolver = PathResolver(self.location, shard_depth)

    @property
    def resolver(self) -> PathResolver:
        """Path resolver for this storage root."""
        return self._resolver

    @override
    def path(self, name: str) -> str:
        """Physical path of a storage name, including shard directories."""
        split = _split_name(name)
        if split is None:
            return super().path(name)
        category, filename = split
        return str(self._resolver.resolve(filename, category, create=False))

    @override
    def url(self, name: str | None) -> str:
        """Public URL of a storage name, including shard directories."""
        split = _split_name(name or '')
        if split is None:
            return super().url(name)
        category, filename = split
        return super().url(self._resolver.relative(filename, category))

    @override
    def get_available_name(self, name: str, max_length: int | None = None) -> str:
        """Keep the requested name; identical names mean identical content."""
        return name

    @override
    def _save(self, name: str, content: Any) -> str:
        """Write content to its final path through a temporary file.

        Args:
            name: Storage name.
            content: Django File object.

        Returns:
            The storage name.

        Raises:
            OSError: If the write fails twice.
        """
        return _retry('write', name, lambda: self._write_atomic(name, content))

    def write_bytes(self, name: str, data: bytes) -> str:
        """Save raw bytes under a storage name."""
        return self.save(name, ContentFile(data))

    @override
    def delete(self, name: str) -> None:
        """Delete a file. A file that is already gone is not an error.

        Args:
            name: Storage name.

        Raises:
            OSError: If the delete fails twice.
        """
        _retry('delete', name, lambda: self._unlink(name))

    def _write_atomic(self, name: str, content: Any) -> str:
        split = _split_name(name)
        if split is None:
            target = Path(super().path(name))
            target.parent.mkdir(parents=True, exist_ok=True)
        else:
            category, filename = split
            target = self._resolver.resolve(filename, category, create=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f'.{target.name}.',
            suffix='.tmp',
            dir=target.parent,
        )
        try:
            with os.fdopen(fd, 'wb') as tmp_file:
                for chunk in content.chunks():
                    tmp_file.write(chunk)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.chmod(tmp_path, self.file_permissions_mode or _DEFAULT_FILE_MODE)
            os.replace(tmp_path, target)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        logger.debug('Wrote %s to %s', name, target)
        return name

    def _unlink(self, name: str) -> None:
        target = Path(self.path(name))
        try:
            target.unlink()
        except FileNotFoundError:
            logger.debug('File already absent: %s', name)


def _split_name(name: str) -> tuple[Category, str] | None:
    """Split ``notes/abcd1234.html`` into category and filename."""
    directory, separator, filename = name.partition('/')
    category = _DIRECTORY_CATEGORIES.get(directory)
    if not separator or category is None or '/' in filename:
        return None
    return category, filename


def _retry(operation: str, name: str, action: Callable[[], _T]) -> _T:
    """Run a storage action, retrying once on OSError."""
    try:
        return action()
    except OSError:
        logger.warning('Storage %s failed, retrying: %s', operation, name)

    try:
        return action()
    except OSError:
        logger.exception('Storage %s failed twice: %s', operation, name)
        raise
