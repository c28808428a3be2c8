"""Mapping of logical filenames to sharded physical paths.

With shard depth 0 a file lives directly in its category directory.
Depth 1 and 2 add one or two intermediate directories named after the
first characters of the filename, which bounds per-directory fan-out:

    depth 0: {root}/notes/abcd1234.html
    depth 1: {root}/notes/a/abcd1234.html
    depth 2: {root}/notes/a/b/abcd1234.html
"""

from pathlib import Path, PurePosixPath
from typing import Final, final

from server.apps.files.models import Category

SHARD_DEPTHS: Final = frozenset((0, 1, 2))

_PATH_SEPARATOR: Final = '/'


def validate_shard_depth(shard_depth: int) -> int:
    """Check that a configured shard depth is supported.

    Args:
        shard_depth: Configured depth.

    Returns:
        The same depth.

    Raises:
        ValueError: If depth is not 0, 1 or 2.
    """
    if shard_depth not in SHARD_DEPTHS:
        raise ValueError(
            f'Shard depth must be one of 0, 1, 2, got {shard_depth!r}',
        )
    return shard_depth


def validate_filename(filename: str) -> None:
    """Reject filenames that could escape their directory.

    Raises:
        ValueError: If filename is empty or contains path components.
    """
    if not filename or filename in {'.', '..'}:
        raise ValueError(f'Invalid filename: {filename!r}')
    if _PATH_SEPARATOR in filename or '\\' in filename or '\x00' in filename:
        raise ValueError(f'Invalid filename: {filename!r}')


def shard_parts(filename: str, shard_depth: int) -> tuple[str, ...]:
    """Shard directory names for a filename.

    Args:
        filename: Generated filename, e.g. ``abcd1234.html``.
        shard_depth: 0, 1 or 2.

    Returns:
        The first ``shard_depth`` characters, one per directory.
    """
    validate_shard_depth(shard_depth)
    return tuple(filename[:shard_depth])


def relative_path(filename: str, category: Category, shard_depth: int) -> str:
    """Path of a file relative to the storage root, with forward slashes.

    Args:
        filename: Generated filename.
        category: Content category.
        shard_depth: 0, 1 or 2.

    Returns:
        E.g. ``notes/a/b/abcd1234.html``.
    """
    validate_filename(filename)
    parts = (category.directory, *shard_parts(filename, shard_depth), filename)
    return str(PurePosixPath(*parts))


def resolve(
    root: Path,
    filename: str,
    category: Category,
    shard_depth: int,
    create: bool = True,
) -> Path:
    """Map a filename to its physical path under the storage root.

    Args:
        root: Storage root directory.
        filename: Generated filename.
        category: Content category.
        shard_depth: 0, 1 or 2.
        create: Create intermediate directories (idempotent).

    Returns:
        Absolute path of the file.
    """
    relative = relative_path(filename, category, shard_depth)
    path = Path(root).joinpath(*relative.split(_PATH_SEPARATOR))
    if create:
        # exist_ok makes concurrent creation of the same shard safe
        path.parent.mkdir(parents=True, exist_ok=True)
    return path


@final
class PathResolver:
    """Resolves filenames for one storage root and shard depth."""

    def __init__(self, root: Path | str, shard_depth: int) -> None:
        """Initialize the resolver.

        Args:
            root: Storage root directory.
            shard_depth: 0, 1 or 2.
        """
        self._root = Path(root)
        self._shard_depth = validate_shard_depth(shard_depth)

    @property
    def root(self) -> Path:
        """Storage root directory."""
        return self._root

    @property
    def shard_depth(self) -> int:
        """Configured shard depth."""
        return self._shard_depth

    def resolve(self, filename: str, category: Category, create: bool = True) -> Path:
        """Physical path of a file, creating shard directories if asked."""
        return resolve(
            self._root,
            filename,
            category,
            self._shard_depth,
            create=create,
        )

    def relative(self, filename: str, category: Category) -> str:
        """Path relative to the root, used to build public URLs."""
        return relative_path(filename, category, self._shard_depth)
