"""Business logic for credential verification and key rotation."""

import enum
import logging
import secrets
from dataclasses import dataclass
from typing import Final, final

from django.db import transaction
from django.utils import timezone

from server.apps.accounts.logic.signing import (
    compute_signature,
    generate_api_key,
    hash_api_key,
    signatures_match,
)
from server.apps.accounts.models import UserCredential

logger = logging.getLogger(__name__)

_UID_BYTES: Final = 16


class Verdict(enum.Enum):
    """Outcome of a signature check."""

    VALID = 'valid'
    INVALID = 'invalid'
    USER_NOT_FOUND = 'user_not_found'


@final
@dataclass(frozen=True, slots=True)
class IssuedKey:
    """A freshly issued API key. The raw key is only available here."""

    uid: str
    api_key: str
    key_hash: str


@final
class CredentialStore:
    """Typed repository and verifier for per-user credentials.

    Nonces are not remembered between requests: a captured
    (nonce, signature) pair can be replayed until the key is rotated.
    """

    def __init__(self, salt: str) -> None:
        """Initialize the store.

        Args:
            salt: Server-wide signing salt.
        """
        self._salt = salt

    def verify(self, uid: str, nonce: str, signature: str) -> Verdict:
        """Check a request signature against the stored key hash.

        Args:
            uid: Caller's user identifier.
            nonce: Per-request nonce.
            signature: Signature supplied by the caller.

        Returns:
            VALID, INVALID or USER_NOT_FOUND.
        """
        if not uid:
            return Verdict.USER_NOT_FOUND

        # A single-column read sees either the old or the new hash.
        key_hash = (
            UserCredential.objects.filter(uid=uid)
            .values_list('key_hash', flat=True)
            .first()
        )
        if key_hash is None:
            logger.info('Signature check for unknown user: %s', uid)
            return Verdict.USER_NOT_FOUND

        if not nonce or not signature:
            return Verdict.INVALID

        expected = compute_signature(key_hash, nonce)
        if not signatures_match(expected, signature):
            logger.info('Invalid signature for user: %s', uid)
            return Verdict.INVALID

        return Verdict.VALID

    def provision(self, uid: str | None = None) -> IssuedKey:
        """Create a credential for a new user.

        Args:
            uid: Identifier to use; a random one is generated when omitted.

        Returns:
            The issued key.

        Raises:
            django.db.IntegrityError: If the uid already exists.
        """
        uid = uid or secrets.token_hex(_UID_BYTES)
        api_key = generate_api_key()
        key_hash = hash_api_key(api_key, self._salt)

        with transaction.atomic():
            UserCredential.objects.create(uid=uid, key_hash=key_hash)

        logger.info('Provisioned credential for user: %s', uid)
        return IssuedKey(uid=uid, api_key=api_key, key_hash=key_hash)

    def rotate(self, uid: str) -> IssuedKey:
        """Replace a user's API key.

        Args:
            uid: User whose key is replaced.

        Returns:
            The newly issued key.

        Raises:
            UserCredential.DoesNotExist: If the user is unknown.
        """
        api_key = generate_api_key()
        key_hash = hash_api_key(api_key, self._salt)

        with transaction.atomic():
            credential = UserCredential.objects.select_for_update().get(uid=uid)
            credential.key_hash = key_hash
            credential.rotated_at = timezone.now()
            credential.save(update_fields=['key_hash', 'rotated_at'])

        logger.info('Rotated credential for user: %s', uid)
        return IssuedKey(uid=uid, api_key=api_key, key_hash=key_hash)

    def exists(self, uid: str) -> bool:
        """Check whether a user has a credential."""
        return UserCredential.objects.filter(uid=uid).exists()
