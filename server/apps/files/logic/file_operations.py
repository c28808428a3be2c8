"""Business logic for file operations."""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import final

from django.db import DatabaseError, transaction
from django.utils import timezone

from server.apps.files.errors import ErrorKind, Failure
from server.apps.files.infrastructure.hashing import (
    calculate_checksum,
    derive_name,
)
from server.apps.files.infrastructure.locks import NameLocks
from server.apps.files.infrastructure.storage import ShardedFileStorage
from server.apps.files.infrastructure.validation import (
    ContentValidator,
    Rejected,
)
from server.apps.files.models import Category, StoredFile

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class StoredResult:
    """Outcome of a successful store."""

    name: str
    category: Category
    extension: str
    path: str
    url: str
    expires_at: datetime | None
    created: bool

    @property
    def filename(self) -> str:
        """On-disk filename."""
        return f'{self.name}.{self.extension}'


@final
@dataclass(frozen=True, slots=True)
class Deleted:
    """Outcome of a successful delete."""

    names: tuple[str, ...]


class PurgeOutcome(enum.Enum):
    """Outcome of a system-initiated purge."""

    PURGED = 'purged'
    ALREADY_GONE = 'already_gone'
    STILL_ACTIVE = 'still_active'


@final
class FileStore:
    """Validates, names, writes and indexes uploaded content.

    Writes and deletes of the same (category, name) are serialized with an
    in-process lock and a row lock inside one transaction. Different names
    never wait on each other.
    """

    def __init__(
        self,
        storage: ShardedFileStorage,
        validator: ContentValidator,
        locks: NameLocks | None = None,
        default_ttl: int | None = None,
        max_ttl: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            storage: Sharded filesystem storage.
            validator: Admission checks for uploads.
            locks: Per-name lock registry, shared with the sweeper.
            default_ttl: TTL in seconds applied when the client sends none.
            max_ttl: Upper bound for TTLs in seconds.
        """
        self._storage = storage
        self._validator = validator
        self._locks = locks or NameLocks()
        self._default_ttl = default_ttl
        self._max_ttl = max_ttl

    @property
    def storage(self) -> ShardedFileStorage:
        """Underlying storage backend."""
        return self._storage

    @property
    def validator(self) -> ContentValidator:
        """Admission checks for uploads."""
        return self._validator

    @property
    def locks(self) -> NameLocks:
        """Per-name lock registry."""
        return self._locks

    def store(
        self,
        uid: str,
        filetype: str,
        content: bytes,
        ttl: int | None = None,
    ) -> StoredResult | Failure:
        """Store uploaded content under its content-derived name.

        Transaction safety: the bytes are written to a temporary file and
        renamed into place before the index row is written. If the DB
        write fails, a newly written file is deleted again (rollback).

        Args:
            uid: Uploading user.
            filetype: Declared extension or filename.
            content: Raw bytes.
            ttl: Requested time to live in seconds.

        Returns:
            StoredResult, or a Failure of kind ValidationRejected,
            NamingConflict or StorageIOFailure.
        """
        verdict = self._validator.admit(filetype, len(content))
        if isinstance(verdict, Rejected):
            logger.info('Upload rejected for user %s: %s', uid, verdict.reason)
            return Failure(
                ErrorKind.VALIDATION_REJECTED,
                verdict.reason,
                oversize=verdict.oversize,
            )

        ttl_or_failure = self._resolve_ttl(ttl)
        if isinstance(ttl_or_failure, Failure):
            return ttl_or_failure

        category = verdict.category
        name = derive_name(content, category)
        checksum = calculate_checksum(content)
        now = timezone.now()
        expires_at = _expiry(now, ttl_or_failure)

        with self._locks.hold((category, name)):
            return self._store_locked(
                uid,
                name,
                category,
                verdict.extension,
                content,
                checksum,
                now,
                expires_at,
            )

    def store_note(
        self,
        uid: str,
        html: str,
        ttl: int | None = None,
    ) -> StoredResult | Failure:
        """Store an HTML note."""
        return self.store(uid, 'html', html.encode('utf-8'), ttl=ttl)

    def delete(
        self,
        uid: str,
        name: str,
        category: Category | None = None,
    ) -> Deleted | Failure:
        """Delete a user's file from storage and the index.

        A file that is already missing from disk counts as deleted, and the
        stale index row is still removed.

        Args:
            uid: Requesting user.
            name: Generated name (an extension, if present, is ignored).
            category: Restrict to one category namespace.

        Returns:
            Deleted, or a Failure of kind NotFound, Forbidden or
            StorageIOFailure.
        """
        name = name.split('.', 1)[0]
        records = StoredFile.objects.filter(name=name)
        if category is not None:
            records = records.filter(category=category)
        records = list(records)

        if not records:
            return Failure(ErrorKind.NOT_FOUND, f'File not found: {name}')

        if any(record.owner_uid != uid for record in records):
            logger.warning(
                'User %s attempted to delete file owned by another user: %s',
                uid,
                name,
            )
            return Failure(ErrorKind.FORBIDDEN, f'Not the owner of: {name}')

        deleted: list[str] = []
        for record in records:
            category_of_record = Category(record.category)
            with self._locks.hold((category_of_record, record.name)):
                failure = self._delete_locked(uid, record.pk)
            if failure is not None:
                return failure
            deleted.append(record.filename)

        return Deleted(tuple(deleted))

    def purge(self, record: StoredFile, now: datetime | None = None) -> PurgeOutcome | Failure:
        """Physically delete an expired file, then its index row.

        System-initiated, so ownership is not checked. On a filesystem
        failure the row is kept for the next attempt.

        Args:
            record: Expired index record.
            now: Reference moment for the expiry check.

        Returns:
            PurgeOutcome, or a StorageIOFailure.
        """
        now = now or timezone.now()
        category = Category(record.category)

        with self._locks.hold((category, record.name)), transaction.atomic():
            current = (
                StoredFile.objects.select_for_update()
                .filter(pk=record.pk)
                .first()
            )
            if current is None:
                return PurgeOutcome.ALREADY_GONE
            if current.is_servable(now):
                # Re-uploaded after the sweep picked it up
                return PurgeOutcome.STILL_ACTIVE

            try:
                self._storage.delete(current.storage_name)
            except OSError as exc:
                logger.exception(
                    'Failed to purge file: name=%s category=%s',
                    current.name,
                    current.category,
                )
                return Failure(ErrorKind.STORAGE_IO_FAILURE, str(exc))

            current.delete()

        logger.info('Purged expired file: %s', record.storage_name)
        return PurgeOutcome.PURGED

    def is_servable(self, record: StoredFile, now: datetime | None = None) -> bool:
        """Check whether a record may be served."""
        return record.is_servable(now)

    def find_servable(
        self,
        name: str,
        category: Category | None = None,
        now: datetime | None = None,
    ) -> StoredFile | None:
        """Find an active record by name.

        Args:
            name: Generated name (an extension, if present, is ignored).
            category: Restrict to one category namespace.
            now: Reference moment for the expiry check.

        Returns:
            The record, or None if missing or expired.
        """
        name = name.split('.', 1)[0]
        records = StoredFile.objects.active(now).filter(name=name)
        if category is not None:
            records = records.filter(category=category)
        return records.first()

    def find_by_filename(
        self,
        category: Category,
        filename: str,
        now: datetime | None = None,
    ) -> StoredFile | None:
        """Find an active record by its on-disk filename."""
        name, _, extension = filename.partition('.')
        return (
            StoredFile.objects.active(now)
            .filter(category=category, name=name, extension=extension.lower())
            .first()
        )

    def latest_for_owner(self, uid: str, category: Category) -> StoredFile | None:
        """Most recent active record of a user in a category."""
        return (
            StoredFile.objects.active()
            .owned_by(uid)
            .filter(category=category)
            .order_by('-created_at')
            .first()
        )

    def public_url(self, record: StoredFile) -> str:
        """Public URL of a record's file."""
        return self._storage.url(record.storage_name)

    def physical_path(self, record: StoredFile) -> str:
        """Path of a record's file on disk."""
        return self._storage.path(record.storage_name)

    def _resolve_ttl(self, ttl: int | None) -> int | None | Failure:
        """Apply the default and maximum TTL."""
        if ttl is None:
            ttl = self._default_ttl
        if ttl is None:
            return None
        if ttl <= 0:
            return Failure(
                ErrorKind.VALIDATION_REJECTED,
                f'Expiration must be positive, got {ttl}',
            )
        if self._max_ttl is not None:
            return min(ttl, self._max_ttl)
        return ttl

    def _store_locked(  # noqa: WPS211
        self,
        uid: str,
        name: str,
        category: Category,
        extension: str,
        content: bytes,
        checksum: str,
        now: datetime,
        expires_at: datetime | None,
    ) -> StoredResult | Failure:
        with transaction.atomic():
            existing = (
                StoredFile.objects.select_for_update()
                .filter(category=category, name=name)
                .first()
            )

            if existing is not None and existing.checksum_sha256 != checksum:
                logger.error(
                    'Naming conflict: name=%s category=%s differs in content',
                    name,
                    category,
                )
                return Failure(
                    ErrorKind.NAMING_CONFLICT,
                    f'Name {name} is already used by different content',
                )

            if existing is not None:
                return self._reuse_existing(
                    existing,
                    uid,
                    content,
                    now,
                    expires_at,
                )

            record = StoredFile(
                name=name,
                category=category,
                extension=extension,
                owner_uid=uid,
                size_bytes=len(content),
                checksum_sha256=checksum,
                created_at=now,
                expires_at=expires_at,
            )
            failure = self._write(record, content)
            if failure is not None:
                return failure

            try:
                record.save(force_insert=True)
            except DatabaseError:
                logger.exception(
                    'Database write failed, rolling back storage upload: %s',
                    record.storage_name,
                )
                self._rollback_write(record)
                raise

        logger.info(
            'Stored %s for user %s (%d bytes)',
            record.storage_name,
            uid,
            record.size_bytes,
        )
        return self._result(record, created=True)

    def _reuse_existing(
        self,
        existing: StoredFile,
        uid: str,
        content: bytes,
        now: datetime,
        expires_at: datetime | None,
    ) -> StoredResult | Failure:
        """Same content is already indexed under this name."""
        if not self._storage.exists(existing.storage_name):
            logger.warning(
                'Index row without file, rewriting: %s',
                existing.storage_name,
            )
            failure = self._write(existing, content)
            if failure is not None:
                return failure

        if existing.is_servable(now) and existing.owner_uid != uid:
            # Shared content: hand out the name, leave the owner's record alone
            logger.info(
                'Dedup hit on file owned by another user: %s',
                existing.storage_name,
            )
            return self._result(existing, created=False)

        if not existing.is_servable(now):
            # Expired and not yet swept: the uploader takes it over
            existing.owner_uid = uid
            existing.created_at = now
        existing.expires_at = expires_at
        existing.save(update_fields=['owner_uid', 'created_at', 'expires_at'])

        logger.info('Re-stored %s for user %s', existing.storage_name, uid)
        return self._result(existing, created=False)

    def _delete_locked(self, uid: str, pk: int) -> Failure | None:
        with transaction.atomic():
            record = StoredFile.objects.select_for_update().filter(pk=pk).first()
            if record is None:
                # Deleted concurrently, nothing left to do
                return None
            if record.owner_uid != uid:
                return Failure(ErrorKind.FORBIDDEN, f'Not the owner of: {record.name}')

            try:
                self._storage.delete(record.storage_name)
            except OSError as exc:
                logger.exception(
                    'Failed to delete file: name=%s category=%s',
                    record.name,
                    record.category,
                )
                return Failure(ErrorKind.STORAGE_IO_FAILURE, str(exc))

            record.delete()

        logger.info('Deleted %s for user %s', record.storage_name, uid)
        return None

    def _write(self, record: StoredFile, content: bytes) -> Failure | None:
        try:
            self._storage.write_bytes(record.storage_name, content)
        except OSError as exc:
            logger.exception(
                'Failed to write file: name=%s category=%s',
                record.name,
                record.category,
            )
            return Failure(ErrorKind.STORAGE_IO_FAILURE, str(exc))
        return None

    def _rollback_write(self, record: StoredFile) -> None:
        """Best-effort removal of a file whose index row was not written."""
        try:
            self._storage.delete(record.storage_name)
        except OSError:
            logger.exception(
                'Failed to roll back upload, orphaned file: %s',
                record.storage_name,
            )

    def _result(self, record: StoredFile, created: bool) -> StoredResult:
        return StoredResult(
            name=record.name,
            category=Category(record.category),
            extension=record.extension,
            path=self.physical_path(record),
            url=self.public_url(record),
            expires_at=record.expires_at,
            created=created,
        )


def _expiry(now: datetime, ttl: int | None) -> datetime | None:
    if ttl is None:
        return None
    return now + timedelta(seconds=ttl)
