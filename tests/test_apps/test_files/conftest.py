"""Shared fixtures for files app tests."""

import secrets

import pytest
from django.apps import apps

from server.apps.accounts.logic.signing import sign_request
from server.apps.files.context import ShareSettings, build_context
from server.apps.files.infrastructure.cache_purge import NullCachePurger

SIGNING_SALT = 'test-signing-salt'


@pytest.fixture
def storage_root(tmp_path):
    """Empty storage root directory.

    Returns:
        Path of the storage root.
    """
    root = tmp_path / 'userfiles'
    root.mkdir()
    return root


@pytest.fixture
def share_settings(storage_root):
    """Settings with a small upload limit and no expiry defaults.

    Returns:
        ShareSettings instance.
    """
    return ShareSettings(
        storage_root=storage_root,
        base_url='https://share.example.com',
        signing_salt=SIGNING_SALT,
        max_upload_bytes=1024,
        shard_depth=2,
    )


@pytest.fixture
def share_context(share_settings):
    """Context built from the test settings.

    Returns:
        ShareContext instance.
    """
    return build_context(share_settings, cache_purger=NullCachePurger())


@pytest.fixture
def file_store(share_context):
    """File store of the test context.

    Returns:
        FileStore instance.
    """
    return share_context.file_store


@pytest.fixture
def installed_context(share_context, monkeypatch):
    """Make views and commands use the test context.

    Returns:
        The installed ShareContext.
    """
    monkeypatch.setattr(
        apps.get_app_config('files'),
        'context',
        share_context,
    )
    return share_context


@pytest.fixture
def issued_key(db, share_context):
    """Provisioned credential for the main test user.

    Returns:
        IssuedKey with the raw API key.
    """
    return share_context.credential_store.provision('test-user')


@pytest.fixture
def other_key(db, share_context):
    """Provisioned credential for a second user.

    Returns:
        IssuedKey with the raw API key.
    """
    return share_context.credential_store.provision('other-user')


@pytest.fixture
def signed_headers():
    """Build identity headers for the Django test client.

    Returns:
        Function taking an IssuedKey and returning header kwargs.
    """

    def factory(issued, **extra):  # noqa: WPS430
        nonce = secrets.token_hex(8)
        headers = {
            'HTTP_X_SHARENOTE_ID': issued.uid,
            'HTTP_X_SHARENOTE_NONCE': nonce,
            'HTTP_X_SHARENOTE_KEY': sign_request(
                issued.api_key,
                nonce,
                SIGNING_SALT,
            ),
        }
        headers.update(extra)
        return headers

    return factory
