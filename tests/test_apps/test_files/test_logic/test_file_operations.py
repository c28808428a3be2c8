"""Tests for file operations business logic."""

from datetime import timedelta
from pathlib import Path

import pytest
from django.db import DatabaseError
from django.utils import timezone

from server.apps.files.errors import ErrorKind, Failure
from server.apps.files.infrastructure.hashing import derive_name
from server.apps.files.logic.file_operations import (
    Deleted,
    FileStore,
    PurgeOutcome,
    StoredResult,
)
from server.apps.files.models import Category, StoredFile

PNG_BYTES = b'\x89PNG\r\n\x1a\n fake image'


@pytest.mark.django_db
def test_store_round_trip(file_store):
    """Test stored bytes can be read back from the resolved path."""
    result = file_store.store('test-user', 'png', PNG_BYTES)

    assert isinstance(result, StoredResult)
    assert result.created
    assert result.category == Category.FILE
    assert result.name == derive_name(PNG_BYTES, Category.FILE)
    assert Path(result.path).read_bytes() == PNG_BYTES

    record = StoredFile.objects.get(name=result.name)
    assert record.owner_uid == 'test-user'
    assert record.size_bytes == len(PNG_BYTES)
    assert record.extension == 'png'


@pytest.mark.django_db
def test_store_uses_sharded_layout(file_store, storage_root):
    """Test the file lands under <root>/<dir>/<c0>/<c1>/ with depth 2."""
    result = file_store.store('test-user', 'css', b'body { color: red; }')

    expected = (
        storage_root / 'css' / result.name[0] / result.name[1] / result.filename
    )
    assert Path(result.path) == expected
    assert result.url == (
        f'https://share.example.com/css/{result.name[0]}/'
        f'{result.name[1]}/{result.filename}'
    )


@pytest.mark.django_db
def test_store_note(file_store):
    """Test notes get an 8 character name and the html extension."""
    result = file_store.store_note('test-user', '<p>hello</p>')

    assert isinstance(result, StoredResult)
    assert result.category == Category.NOTE
    assert len(result.name) == 8
    assert result.filename.endswith('.html')


@pytest.mark.django_db
def test_store_is_idempotent(file_store):
    """Test re-storing identical content keeps one record and one name."""
    first = file_store.store('test-user', 'png', PNG_BYTES)
    second = file_store.store('test-user', 'png', PNG_BYTES)

    assert first.name == second.name
    assert not second.created
    assert StoredFile.objects.count() == 1


@pytest.mark.django_db
def test_store_refreshes_expiry_for_same_owner(file_store):
    """Test a re-upload by the owner replaces the expiry."""
    first = file_store.store('test-user', 'png', PNG_BYTES, ttl=60)
    second = file_store.store('test-user', 'png', PNG_BYTES, ttl=3600)

    assert second.expires_at > first.expires_at
    record = StoredFile.objects.get(name=first.name)
    assert record.expires_at == second.expires_at


@pytest.mark.django_db
def test_store_dedup_across_owners(file_store):
    """Test active content of another user is shared, not taken over."""
    first = file_store.store('test-user', 'png', PNG_BYTES, ttl=3600)
    second = file_store.store('other-user', 'png', PNG_BYTES, ttl=60)

    assert second.name == first.name
    record = StoredFile.objects.get(name=first.name)
    assert record.owner_uid == 'test-user'
    assert record.expires_at == first.expires_at


@pytest.mark.django_db
def test_store_takes_over_expired_record(file_store):
    """Test an expired record is reassigned to the new uploader."""
    first = file_store.store('test-user', 'png', PNG_BYTES, ttl=60)
    StoredFile.objects.filter(name=first.name).update(
        expires_at=timezone.now() - timedelta(seconds=1),
    )

    second = file_store.store('other-user', 'png', PNG_BYTES)

    assert isinstance(second, StoredResult)
    record = StoredFile.objects.get(name=first.name)
    assert record.owner_uid == 'other-user'
    assert record.is_servable()


@pytest.mark.django_db
def test_store_rewrites_missing_file(file_store):
    """Test a record whose file vanished gets its file back."""
    first = file_store.store('test-user', 'png', PNG_BYTES)
    Path(first.path).unlink()

    second = file_store.store('test-user', 'png', PNG_BYTES)

    assert Path(second.path).read_bytes() == PNG_BYTES


@pytest.mark.django_db
def test_store_naming_conflict(file_store):
    """Test a name taken by different content is never overwritten."""
    name = derive_name(PNG_BYTES, Category.FILE)
    StoredFile.objects.create(
        name=name,
        category=Category.FILE,
        extension='png',
        owner_uid='other-user',
        size_bytes=3,
        checksum_sha256='0' * 64,
    )

    result = file_store.store('test-user', 'png', PNG_BYTES)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.NAMING_CONFLICT
    assert result.status_code == 500
    assert StoredFile.objects.get(name=name).owner_uid == 'other-user'


@pytest.mark.django_db
def test_store_rejects_disallowed_type(file_store, storage_root):
    """Test .exe is rejected with no file and no record."""
    result = file_store.store('test-user', 'exe', b'MZ binary')

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.VALIDATION_REJECTED
    assert result.status_code == 400
    assert not StoredFile.objects.exists()
    assert not list(storage_root.rglob('*'))


@pytest.mark.django_db
def test_store_rejects_oversize(file_store, storage_root):
    """Test content above the limit is rejected with 413."""
    result = file_store.store('test-user', 'png', b'x' * 1025)

    assert isinstance(result, Failure)
    assert result.status_code == 413
    assert not StoredFile.objects.exists()
    assert not list(storage_root.rglob('*'))


@pytest.mark.django_db
def test_store_storage_failure(file_store, monkeypatch):
    """Test an unwritable disk yields StorageIOFailure and no record."""

    def failing_write(name, data):  # noqa: WPS430
        raise OSError('read-only file system')

    monkeypatch.setattr(file_store.storage, 'write_bytes', failing_write)

    result = file_store.store('test-user', 'png', PNG_BYTES)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.STORAGE_IO_FAILURE
    assert not StoredFile.objects.exists()


@pytest.mark.django_db
def test_store_rolls_back_file_on_db_error(file_store, storage_root, monkeypatch):
    """Test a failed index write removes the freshly written file."""

    def failing_save(self, *args, **kwargs):  # noqa: WPS430
        raise DatabaseError('database is locked')

    monkeypatch.setattr(StoredFile, 'save', failing_save)

    with pytest.raises(DatabaseError):
        file_store.store('test-user', 'png', PNG_BYTES)

    assert not [path for path in storage_root.rglob('*') if path.is_file()]


@pytest.mark.django_db
def test_ttl_defaults_and_clamping(share_context):
    """Test default TTL applies and explicit TTLs are capped."""
    store = FileStore(
        storage=share_context.file_store.storage,
        validator=share_context.file_store.validator,
        default_ttl=60,
        max_ttl=120,
    )
    before = timezone.now()

    defaulted = store.store('test-user', 'css', b'a {}')
    clamped = store.store('test-user', 'css', b'b {}', ttl=10_000)

    assert defaulted.expires_at - before < timedelta(seconds=61)
    assert defaulted.expires_at - before >= timedelta(seconds=60)
    assert clamped.expires_at - before < timedelta(seconds=121)


@pytest.mark.django_db
@pytest.mark.parametrize('ttl', [0, -5])
def test_non_positive_ttl_rejected(file_store, ttl):
    """Test TTL <= 0 is a validation failure."""
    result = file_store.store('test-user', 'css', b'a {}', ttl=ttl)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.VALIDATION_REJECTED
    assert not StoredFile.objects.exists()


@pytest.mark.django_db
def test_no_ttl_means_no_expiry(file_store):
    """Test files stored without any TTL never expire."""
    result = file_store.store('test-user', 'css', b'a {}')

    assert result.expires_at is None


@pytest.mark.django_db
def test_delete_own_file(file_store):
    """Test the owner can delete; both file and record go away."""
    stored = file_store.store('test-user', 'png', PNG_BYTES)

    result = file_store.delete('test-user', stored.filename)

    assert result == Deleted((stored.filename,))
    assert not Path(stored.path).exists()
    assert not StoredFile.objects.exists()


@pytest.mark.django_db
def test_delete_foreign_file_forbidden(file_store):
    """Test deleting another user's file leaves file and record intact."""
    stored = file_store.store('test-user', 'png', PNG_BYTES)

    result = file_store.delete('other-user', stored.name)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.FORBIDDEN
    assert result.status_code == 403
    assert Path(stored.path).exists()
    assert StoredFile.objects.filter(name=stored.name).exists()


@pytest.mark.django_db
def test_delete_unknown_file(file_store):
    """Test deleting a name that was never stored is NotFound."""
    result = file_store.delete('test-user', 'doesnotexist')

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.NOT_FOUND


@pytest.mark.django_db
def test_delete_with_missing_file_still_removes_record(file_store):
    """Test an already missing file counts as deleted."""
    stored = file_store.store('test-user', 'png', PNG_BYTES)
    Path(stored.path).unlink()

    result = file_store.delete('test-user', stored.name, Category.FILE)

    assert isinstance(result, Deleted)
    assert not StoredFile.objects.exists()


@pytest.mark.django_db
def test_purge_expired_record(file_store):
    """Test purge removes the file then the record."""
    stored = file_store.store('test-user', 'png', PNG_BYTES, ttl=60)
    record = StoredFile.objects.get(name=stored.name)

    outcome = file_store.purge(record, now=timezone.now() + timedelta(minutes=5))

    assert outcome is PurgeOutcome.PURGED
    assert not Path(stored.path).exists()
    assert not StoredFile.objects.exists()


@pytest.mark.django_db
def test_purge_skips_revived_record(file_store):
    """Test a record re-uploaded after selection is not purged."""
    stored = file_store.store('test-user', 'png', PNG_BYTES, ttl=3600)
    record = StoredFile.objects.get(name=stored.name)

    outcome = file_store.purge(record)

    assert outcome is PurgeOutcome.STILL_ACTIVE
    assert Path(stored.path).exists()


@pytest.mark.django_db
def test_find_servable_hides_expired(file_store):
    """Test expired records are not found for serving."""
    stored = file_store.store('test-user', 'png', PNG_BYTES, ttl=60)

    assert file_store.find_servable(stored.name, Category.FILE) is not None
    later = timezone.now() + timedelta(minutes=5)
    assert file_store.find_servable(stored.name, Category.FILE, now=later) is None


@pytest.mark.django_db
def test_latest_for_owner(file_store):
    """Test the newest active record of a category is returned."""
    file_store.store('test-user', 'css', b'a {}')
    newest = file_store.store('test-user', 'css', b'b {}')
    file_store.store('other-user', 'css', b'c {}')

    record = file_store.latest_for_owner('test-user', Category.CSS)

    assert record.name == newest.name
