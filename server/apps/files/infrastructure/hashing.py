"""Content-addressed naming."""

import hashlib
import string
from typing import Final

from server.apps.files.models import Category

_ALPHABET: Final = string.digits + string.ascii_lowercase
_RADIX: Final = len(_ALPHABET)

# 2**256 needs 50 base-36 digits
_FULL_LENGTH: Final = 50

NOTE_NAME_LENGTH: Final = 8
DEFAULT_NAME_LENGTH: Final = 20


def calculate_checksum(content: bytes) -> str:
    """Calculate SHA256 checksum of content.

    Args:
        content: Raw bytes.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    return hashlib.sha256(content).hexdigest()


def to_base36(number: int, width: int) -> str:
    """Render a non-negative integer in base 36, left-padded with zeros.

    Args:
        number: Value to convert.
        width: Minimum number of digits.

    Returns:
        Lowercase base-36 string.
    """
    if number < 0:
        raise ValueError('Only non-negative numbers can be converted')

    digits = []
    while number:
        number, remainder = divmod(number, _RADIX)
        digits.append(_ALPHABET[remainder])
    return ''.join(reversed(digits)).rjust(width, '0')


def name_length(category: Category) -> int:
    """Number of characters in names of the given category."""
    if category == Category.NOTE:
        return NOTE_NAME_LENGTH
    return DEFAULT_NAME_LENGTH


def derive_name(content: bytes, category: Category) -> str:
    """Derive the storage name of a piece of content.

    The SHA256 digest is converted to base 36 and its low-order digits are
    kept, so identical content always maps to the same name and every
    leading character is equally likely.

    Args:
        content: Raw bytes of the upload.
        category: Content category, which decides the name length.

    Returns:
        8 characters for notes, 20 for everything else.
    """
    digest = int.from_bytes(hashlib.sha256(content).digest(), 'big')
    return to_base36(digest, _FULL_LENGTH)[-name_length(category):]
