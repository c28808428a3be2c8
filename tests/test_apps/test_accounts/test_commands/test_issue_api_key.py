"""Tests for issue_api_key management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from server.apps.accounts.models import UserCredential
from server.apps.files.context import get_context


@pytest.mark.django_db
class TestIssueApiKeyCommand:
    """Tests for issue_api_key management command."""

    def test_provision_with_uid(self):
        """Test a credential is created and the key printed once."""
        out = StringIO()
        call_command('issue_api_key', '--uid=alice', stdout=out)

        output = out.getvalue()
        assert 'uid: alice' in output
        assert 'api_key: ' in output
        assert f'salt: {get_context().settings.signing_salt}' in output
        assert UserCredential.objects.filter(uid='alice').exists()

    def test_provision_existing_uid_fails(self):
        """Test provisioning an existing uid is a command error."""
        call_command('issue_api_key', '--uid=alice', stdout=StringIO())

        with pytest.raises(CommandError, match='already exists'):
            call_command('issue_api_key', '--uid=alice', stdout=StringIO())

    def test_rotate(self):
        """Test --rotate replaces the stored hash."""
        call_command('issue_api_key', '--uid=alice', stdout=StringIO())
        before = UserCredential.objects.get(uid='alice').key_hash

        call_command('issue_api_key', '--uid=alice', '--rotate', stdout=StringIO())

        assert UserCredential.objects.get(uid='alice').key_hash != before

    def test_rotate_requires_uid(self):
        """Test --rotate without --uid is refused."""
        with pytest.raises(CommandError, match='requires --uid'):
            call_command('issue_api_key', '--rotate', stdout=StringIO())

    def test_rotate_unknown_uid(self):
        """Test rotating an unknown uid is a command error."""
        with pytest.raises(CommandError, match='Unknown user'):
            call_command('issue_api_key', '--uid=ghost', '--rotate', stdout=StringIO())
