"""Admission control for uploaded content."""

from dataclasses import dataclass
from typing import Final, final

from server.apps.files.models import Category

NOTE_EXTENSIONS: Final = frozenset(('html',))
CSS_EXTENSIONS: Final = frozenset(('css',))
IMAGE_EXTENSIONS: Final = frozenset((
    'png', 'jpg', 'jpeg', 'gif', 'webp', 'svg', 'avif', 'bmp', 'ico',
))
FONT_EXTENSIONS: Final = frozenset(('ttf', 'otf', 'woff', 'woff2'))
VIDEO_EXTENSIONS: Final = frozenset(('mp4',))

ALLOWED_EXTENSIONS: Final = (
    NOTE_EXTENSIONS
    | CSS_EXTENSIONS
    | IMAGE_EXTENSIONS
    | FONT_EXTENSIONS
    | VIDEO_EXTENSIONS
)


@final
@dataclass(frozen=True, slots=True)
class Accepted:
    """Content may be stored."""

    extension: str
    category: Category


@final
@dataclass(frozen=True, slots=True)
class Rejected:
    """Content must not be stored."""

    reason: str
    oversize: bool = False


def get_file_extension(filename_or_type: str) -> str:
    """Normalize a filename or declared type to a bare extension.

    Examples: ``'photo.PNG'`` -> ``'png'``, ``'.css'`` -> ``'css'``,
    ``'woff2'`` -> ``'woff2'``.

    Args:
        filename_or_type: Filename, ``.ext`` or ``ext``.

    Returns:
        Extension without dot, lowercase. Empty string if there is none.
    """
    value = (filename_or_type or '').strip().lower()
    return value.rsplit('.', 1)[-1]


def category_for_extension(extension: str) -> Category:
    """Content category of an allowed extension."""
    if extension in NOTE_EXTENSIONS:
        return Category.NOTE
    if extension in CSS_EXTENSIONS:
        return Category.CSS
    return Category.FILE


@final
class ContentValidator:
    """Admits uploads by extension whitelist and maximum size."""

    def __init__(self, max_bytes: int) -> None:
        """Initialize the validator.

        Args:
            max_bytes: Largest accepted upload in bytes.
        """
        if max_bytes <= 0:
            raise ValueError('Maximum upload size must be positive')
        self._max_bytes = max_bytes

    @property
    def max_bytes(self) -> int:
        """Largest accepted upload in bytes."""
        return self._max_bytes

    def check_type(self, filename_or_type: str) -> Accepted | Rejected:
        """Admit or reject by extension only."""
        extension = get_file_extension(filename_or_type)
        if not extension:
            return Rejected('Missing file type')
        if extension not in ALLOWED_EXTENSIONS:
            return Rejected(f'File type not allowed: {extension}')
        return Accepted(extension, category_for_extension(extension))

    def check_size(self, byte_length: int) -> Rejected | None:
        """Reject sizes outside ``0..max_bytes``, otherwise return None."""
        if byte_length < 0:
            return Rejected(f'Invalid size: {byte_length}')
        if byte_length > self._max_bytes:
            return Rejected(
                f'File is too large: {byte_length} bytes, '
                f'maximum is {self._max_bytes} bytes',
                oversize=True,
            )
        return None

    def admit(self, filename_or_type: str, byte_length: int) -> Accepted | Rejected:
        """Admit or reject an upload.

        Args:
            filename_or_type: Filename or declared extension.
            byte_length: Declared or actual size in bytes.

        Returns:
            Accepted with the normalized extension and category, or
            Rejected with a reason.
        """
        verdict = self.check_type(filename_or_type)
        if isinstance(verdict, Rejected):
            return verdict
        return self.check_size(byte_length) or verdict
