"""Error taxonomy for files app.

Domain operations return a ``Failure`` instead of raising, and the view
layer maps its kind to a status code.
"""

import enum
from dataclasses import dataclass
from typing import Final, final


class ErrorKind(enum.Enum):
    """Everything that can go wrong while handling a request."""

    AUTH_INVALID = 'AuthInvalid'
    AUTH_USER_UNKNOWN = 'AuthUserUnknown'
    VALIDATION_REJECTED = 'ValidationRejected'
    NAMING_CONFLICT = 'NamingConflict'
    STORAGE_IO_FAILURE = 'StorageIOFailure'
    NOT_FOUND = 'NotFound'
    FORBIDDEN = 'Forbidden'


# Tells the client to silently re-provision its API key
CREDENTIAL_REFRESH_STATUS: Final = 462

_STATUS_CODES: Final = {
    ErrorKind.AUTH_INVALID: CREDENTIAL_REFRESH_STATUS,
    ErrorKind.AUTH_USER_UNKNOWN: CREDENTIAL_REFRESH_STATUS,
    ErrorKind.VALIDATION_REJECTED: 400,
    ErrorKind.NAMING_CONFLICT: 500,
    ErrorKind.STORAGE_IO_FAILURE: 500,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
}

_PAYLOAD_TOO_LARGE: Final = 413


@final
@dataclass(frozen=True, slots=True)
class Failure:
    """A failed operation.

    Attributes:
        kind: Error category.
        message: Human readable reason, safe to return to the client.
        oversize: Set for size rejections, which answer 413.
    """

    kind: ErrorKind
    message: str
    oversize: bool = False

    @property
    def status_code(self) -> int:
        """HTTP status for this failure."""
        if self.oversize:
            return _PAYLOAD_TOO_LARGE
        return _STATUS_CODES[self.kind]

    @property
    def needs_credential_refresh(self) -> bool:
        """True for authentication failures."""
        return self.status_code == CREDENTIAL_REFRESH_STATUS
