"""Tests for sweep_expired management command."""

from datetime import timedelta
from io import StringIO
from pathlib import Path

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.files.models import StoredFile


def _expire_all():
    StoredFile.objects.update(expires_at=timezone.now() - timedelta(seconds=1))


@pytest.mark.django_db
class TestSweepExpiredCommand:
    """Tests for sweep_expired management command."""

    def test_sweep_deletes_expired_files(self, installed_context):
        """Test expired files are removed from disk and index."""
        stored = installed_context.file_store.store('test-user', 'css', b'a {}', ttl=60)
        _expire_all()

        out = StringIO()
        call_command('sweep_expired', stdout=out)

        assert not StoredFile.objects.exists()
        assert not Path(stored.path).exists()
        assert 'Purged 1 files, 0 failed' in out.getvalue()

    def test_sweep_preserves_active_files(self, installed_context):
        """Test files that have not expired yet are kept."""
        installed_context.file_store.store('test-user', 'css', b'a {}', ttl=3600)

        out = StringIO()
        call_command('sweep_expired', stdout=out)

        assert StoredFile.objects.count() == 1
        assert 'Purged 0 files' in out.getvalue()

    def test_sweep_batch_limit(self, installed_context):
        """Test sweep respects --batch-size option."""
        for index in range(5):
            installed_context.file_store.store(
                'test-user',
                'css',
                f'.c{index} {{}}'.encode(),
                ttl=60,
            )
        _expire_all()

        out = StringIO()
        call_command('sweep_expired', '--batch-size=2', stdout=out)

        assert StoredFile.objects.count() == 3
        assert 'Purged 2 files' in out.getvalue()

    def test_sweep_dry_run(self, installed_context):
        """Test --dry-run lists files without deleting them."""
        stored = installed_context.file_store.store('test-user', 'css', b'a {}', ttl=60)
        _expire_all()

        out = StringIO()
        call_command('sweep_expired', '--dry-run', stdout=out)

        assert StoredFile.objects.count() == 1
        assert Path(stored.path).exists()
        assert f'Would delete: css/{stored.filename}' in out.getvalue()
        assert 'Would purge 1 files' in out.getvalue()
