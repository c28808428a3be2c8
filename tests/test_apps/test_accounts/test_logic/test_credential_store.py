"""Tests for credential verification and rotation."""

import pytest
from django.db import IntegrityError

from server.apps.accounts.logic.credential_store import Verdict
from server.apps.accounts.logic.signing import sign_request
from server.apps.accounts.models import UserCredential


def _flip_bit(signature, position):
    raw = bytearray(bytes.fromhex(signature))
    raw[position // 8] ^= 1 << (position % 8)
    return raw.hex()


@pytest.mark.django_db
def test_provision_stores_only_hash(credential_store):
    """Test provisioning never persists the raw key."""
    issued = credential_store.provision('new-user')

    credential = UserCredential.objects.get(uid='new-user')
    assert credential.key_hash == issued.key_hash
    assert credential.key_hash != issued.api_key
    assert credential.rotated_at is None


@pytest.mark.django_db
def test_provision_generates_uid(credential_store):
    """Test a random uid is chosen when none is given."""
    issued = credential_store.provision()

    assert len(issued.uid) == 32
    assert credential_store.exists(issued.uid)


@pytest.mark.django_db
def test_provision_duplicate_uid(credential_store, issued_key):
    """Test an existing uid cannot be provisioned twice."""
    with pytest.raises(IntegrityError):
        credential_store.provision(issued_key.uid)


@pytest.mark.django_db
def test_verify_valid_signature(credential_store, issued_key, signing_salt):
    """Test a correctly signed nonce is accepted."""
    signature = sign_request(issued_key.api_key, 'nonce-1', signing_salt)

    assert credential_store.verify('test-user', 'nonce-1', signature) is Verdict.VALID


@pytest.mark.django_db
def test_verify_any_single_bit_flip_invalid(credential_store, issued_key, signing_salt):
    """Test every single-bit mutation of the signature is rejected."""
    signature = sign_request(issued_key.api_key, 'nonce-1', signing_salt)

    for position in range(256):
        mutated = _flip_bit(signature, position)
        verdict = credential_store.verify('test-user', 'nonce-1', mutated)
        assert verdict is Verdict.INVALID, position


@pytest.mark.django_db
def test_verify_signature_bound_to_nonce(credential_store, issued_key, signing_salt):
    """Test a signature for one nonce does not validate another."""
    signature = sign_request(issued_key.api_key, 'nonce-1', signing_salt)

    assert credential_store.verify('test-user', 'nonce-2', signature) is Verdict.INVALID


@pytest.mark.django_db
def test_verify_unknown_user(credential_store):
    """Test an unknown uid is reported as such."""
    assert credential_store.verify('ghost', 'nonce', 'sig') is Verdict.USER_NOT_FOUND
    assert credential_store.verify('', 'nonce', 'sig') is Verdict.USER_NOT_FOUND


@pytest.mark.django_db
@pytest.mark.parametrize(('nonce', 'signature'), [('', 'abc'), ('nonce', '')])
def test_verify_empty_values_invalid(credential_store, issued_key, nonce, signature):
    """Test empty nonce or signature is never valid."""
    assert credential_store.verify('test-user', nonce, signature) is Verdict.INVALID


@pytest.mark.django_db
def test_verify_replayed_nonce_is_accepted(credential_store, issued_key, signing_salt):
    """Test nonces are not remembered: a replay verifies again."""
    signature = sign_request(issued_key.api_key, 'nonce-1', signing_salt)

    assert credential_store.verify('test-user', 'nonce-1', signature) is Verdict.VALID
    assert credential_store.verify('test-user', 'nonce-1', signature) is Verdict.VALID


@pytest.mark.django_db
def test_rotation_invalidates_old_key(credential_store, issued_key, signing_salt):
    """Test signatures made with the old key stop verifying."""
    rotated = credential_store.rotate('test-user')

    old = sign_request(issued_key.api_key, 'nonce', signing_salt)
    new = sign_request(rotated.api_key, 'nonce', signing_salt)

    assert credential_store.verify('test-user', 'nonce', old) is Verdict.INVALID
    assert credential_store.verify('test-user', 'nonce', new) is Verdict.VALID
    assert UserCredential.objects.get(uid='test-user').rotated_at is not None


@pytest.mark.django_db
def test_rotate_unknown_user(credential_store):
    """Test rotating a missing credential raises."""
    with pytest.raises(UserCredential.DoesNotExist):
        credential_store.rotate('ghost')
