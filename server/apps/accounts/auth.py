"""Request authentication from the share note identity headers.

Every mutating request carries the caller's UID, a per-request nonce and
the nonce signed with the caller's API key. An optional deployment-wide
upload key can be required on top.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Final, final

from django.http import HttpRequest

from server.apps.accounts.logic.credential_store import CredentialStore, Verdict

logger = logging.getLogger(__name__)

UID_HEADER: Final = 'x-sharenote-id'
NONCE_HEADER: Final = 'x-sharenote-nonce'
SIGNATURE_HEADER: Final = 'x-sharenote-key'
UPLOAD_KEY_HEADER: Final = 'x-sharenote-uploadkey'


@final
@dataclass(frozen=True, slots=True)
class RequestCredential:
    """Identity claimed by a single request. Never persisted."""

    uid: str
    nonce: str
    signature: str


def read_credential(request: HttpRequest) -> RequestCredential:
    """Extract the identity headers; missing headers become empty strings."""
    headers = request.headers
    return RequestCredential(
        uid=headers.get(UID_HEADER, '').strip(),
        nonce=headers.get(NONCE_HEADER, '').strip(),
        signature=headers.get(SIGNATURE_HEADER, '').strip(),
    )


def upload_key_matches(request: HttpRequest, upload_key: str) -> bool:
    """Check the deployment-wide upload key.

    Args:
        request: Incoming request.
        upload_key: Configured key; empty disables the check.

    Returns:
        True when no key is configured or the header matches it.
    """
    if not upload_key:
        return True
    supplied = request.headers.get(UPLOAD_KEY_HEADER, '')
    return hmac.compare_digest(supplied.encode(), upload_key.encode())


def authenticate_request(
    request: HttpRequest,
    credential_store: CredentialStore,
) -> tuple[Verdict, RequestCredential]:
    """Verify the signature a request carries.

    Args:
        request: Incoming request.
        credential_store: Store holding the key hashes.

    Returns:
        The verdict and the credential it was computed for.
    """
    credential = read_credential(request)
    verdict = credential_store.verify(
        credential.uid,
        credential.nonce,
        credential.signature,
    )
    if verdict is Verdict.VALID:
        logger.debug('Request authenticated for user: %s', credential.uid)
    else:
        logger.warning(
            'Authentication failed (%s) for user: %s',
            verdict.value,
            credential.uid or '<missing>',
        )
    return verdict, credential
