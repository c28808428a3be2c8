"""Shared fixtures for accounts app tests."""

import pytest

from server.apps.accounts.logic.credential_store import CredentialStore


@pytest.fixture
def signing_salt():
    """Fixed server-wide salt.

    Returns:
        Salt string.
    """
    return 'accounts-test-salt'


@pytest.fixture
def credential_store(signing_salt):
    """Credential store with a fixed salt.

    Returns:
        CredentialStore instance.
    """
    return CredentialStore(signing_salt)


@pytest.fixture
def issued_key(db, credential_store):
    """Credential provisioned for a known uid.

    Returns:
        IssuedKey with the raw API key.
    """
    return credential_store.provision('test-user')
