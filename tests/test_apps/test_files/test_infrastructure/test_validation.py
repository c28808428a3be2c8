"""Tests for upload admission control."""

import pytest

from server.apps.files.infrastructure.validation import (
    Accepted,
    ContentValidator,
    Rejected,
    get_file_extension,
)
from server.apps.files.models import Category


@pytest.fixture
def validator():
    """Validator with a 1 KiB limit.

    Returns:
        ContentValidator instance.
    """
    return ContentValidator(max_bytes=1024)


@pytest.mark.parametrize(('raw', 'expected'), [
    ('photo.PNG', 'png'),
    ('.css', 'css'),
    ('woff2', 'woff2'),
    ('archive.tar.gz', 'gz'),
    ('  HTML ', 'html'),
    ('', ''),
])
def test_get_file_extension(raw, expected):
    """Test extensions are normalized from filenames and bare types."""
    assert get_file_extension(raw) == expected


@pytest.mark.parametrize(('filetype', 'category'), [
    ('html', Category.NOTE),
    ('css', Category.CSS),
    ('png', Category.FILE),
    ('jpeg', Category.FILE),
    ('svg', Category.FILE),
    ('woff2', Category.FILE),
    ('mp4', Category.FILE),
])
def test_admit_whitelisted_types(validator, filetype, category):
    """Test whitelisted types are accepted with their category."""
    verdict = validator.admit(filetype, 10)

    assert verdict == Accepted(filetype, category)


@pytest.mark.parametrize('filetype', ['exe', 'sh', 'js', 'payload.exe', ''])
def test_admit_rejects_other_types(validator, filetype):
    """Test unknown and missing extensions are rejected."""
    verdict = validator.admit(filetype, 10)

    assert isinstance(verdict, Rejected)
    assert not verdict.oversize


def test_admit_size_limit(validator):
    """Test the maximum size itself is allowed and one byte more is not."""
    assert isinstance(validator.admit('png', 1024), Accepted)

    verdict = validator.admit('png', 1025)

    assert isinstance(verdict, Rejected)
    assert verdict.oversize
    assert 'too large' in verdict.reason


def test_admit_rejects_negative_size(validator):
    """Test negative sizes are rejected without the oversize flag."""
    verdict = validator.admit('png', -1)

    assert isinstance(verdict, Rejected)
    assert not verdict.oversize


def test_empty_content_is_accepted(validator):
    """Test zero-byte uploads are valid."""
    assert isinstance(validator.admit('css', 0), Accepted)


def test_non_positive_limit_rejected():
    """Test the validator refuses a non-positive maximum."""
    with pytest.raises(ValueError, match='positive'):
        ContentValidator(max_bytes=0)
