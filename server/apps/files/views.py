"""HTTP endpoints of the share server.

Mutating endpoints live under ``/v1/file/`` and answer JSON objects with a
``success`` flag. Stored files are served read-only from their public
paths until they expire.
"""

import functools
import json
import logging
from collections.abc import Callable
from typing import Any, Final

from django.http import (
    FileResponse,
    Http404,
    HttpRequest,
    HttpResponse,
    JsonResponse,
)
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from server.apps.accounts.auth import authenticate_request, upload_key_matches
from server.apps.accounts.logic.credential_store import Verdict
from server.apps.files.context import ShareContext, get_context
from server.apps.files.errors import ErrorKind, Failure
from server.apps.files.infrastructure.validation import Rejected
from server.apps.files.logic.file_operations import StoredResult
from server.apps.files.models import Category, StoredFile

logger = logging.getLogger(__name__)

FILETYPE_HEADER: Final = 'x-sharenote-filetype'
BYTELENGTH_HEADER: Final = 'x-sharenote-bytelength'
EXPIRATION_HEADER: Final = 'x-sharenote-expiration'

_UNAUTHORIZED: Final = 401

_AUTH_FAILURES: Final = {
    Verdict.INVALID: Failure(ErrorKind.AUTH_INVALID, 'Invalid signature'),
    Verdict.USER_NOT_FOUND: Failure(ErrorKind.AUTH_USER_UNKNOWN, 'Unknown user'),
}

_DIRECTORY_CATEGORIES: Final = {category.directory: category for category in Category}

_SignedView = Callable[[HttpRequest, ShareContext, str], HttpResponse]


def signed_request(view: _SignedView) -> Callable[[HttpRequest], HttpResponse]:
    """Guard a POST endpoint with the upload key and request signature.

    The wrapped view receives the share context and the verified UID.
    Signature failures answer 462 so the client refreshes its key.
    """

    @csrf_exempt
    @require_POST
    @functools.wraps(view)
    def wrapper(request: HttpRequest) -> HttpResponse:
        context = get_context()
        if not upload_key_matches(request, context.settings.upload_key):
            logger.warning('Request rejected: bad upload key')
            return JsonResponse(
                {'success': False, 'error': 'Invalid upload key'},
                status=_UNAUTHORIZED,
            )

        verdict, credential = authenticate_request(
            request,
            context.credential_store,
        )
        if verdict is not Verdict.VALID:
            return _failure_response(_AUTH_FAILURES[verdict])

        return view(request, context, credential.uid)

    return wrapper


@signed_request
def check_css(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Return the caller's most recent active stylesheet."""
    record = context.file_store.latest_for_owner(uid, Category.CSS)
    if record is None:
        return JsonResponse({'success': False})
    return JsonResponse({
        'success': True,
        'url': context.file_store.public_url(record),
        'filename': record.filename,
    })


@signed_request
def create_note(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Store the posted HTML as a note."""
    payload = _json_body(request, context.file_store.validator.max_bytes)
    if isinstance(payload, Failure):
        return _failure_response(payload)

    html = payload.get('html')
    if not isinstance(html, str) or not html:
        return _failure_response(_rejected('Missing note html'))

    ttl = _parse_ttl(payload.get('expiration'))
    if isinstance(ttl, Failure):
        return _failure_response(ttl)

    outcome = context.file_store.store_note(uid, html, ttl=ttl)
    if isinstance(outcome, Failure):
        return _failure_response(outcome)
    return JsonResponse(_stored_payload(outcome))


@signed_request
def check_file(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Tell the client whether a file with this hash is already hosted."""
    payload = _json_body(request, context.file_store.validator.max_bytes)
    if isinstance(payload, Failure):
        return _failure_response(payload)

    url = _existing_url(context, payload)
    if isinstance(url, Failure):
        return _failure_response(url)
    if url is None:
        return JsonResponse({'success': False})
    return JsonResponse({'success': True, 'url': url})


@signed_request
def check_files(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Batch version of ``check_file``; unknown entries get a null url."""
    payload = _json_body(request, context.file_store.validator.max_bytes)
    if isinstance(payload, Failure):
        return _failure_response(payload)

    entries = payload.get('files')
    if not isinstance(entries, list):
        return _failure_response(_rejected('Expected a list of files'))

    results = []
    for entry in entries:
        if not isinstance(entry, dict):
            return _failure_response(_rejected('Invalid file entry'))
        url = _existing_url(context, entry)
        results.append({
            'hash': entry.get('hash'),
            'filetype': entry.get('filetype'),
            'url': None if isinstance(url, Failure) else url,
        })
    return JsonResponse({'success': True, 'files': results})


@signed_request
def upload(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Store a raw request body.

    Declared lengths are checked before the body is read, and the body is
    never read past ``max + 1`` bytes.
    """
    validator = context.file_store.validator
    filetype = request.headers.get(FILETYPE_HEADER, '')

    type_check = validator.check_type(filetype)
    if isinstance(type_check, Rejected):
        return _failure_response(_rejected(type_check.reason))

    declared = _declared_length(request)
    if isinstance(declared, Failure):
        return _failure_response(declared)
    if declared is not None:
        too_large = validator.check_size(declared)
        if too_large is not None:
            return _failure_response(
                _rejected(too_large.reason, oversize=too_large.oversize),
            )

    ttl = _parse_ttl(request.headers.get(EXPIRATION_HEADER))
    if isinstance(ttl, Failure):
        return _failure_response(ttl)

    content = request.read(validator.max_bytes + 1)
    declared_body = request.headers.get(BYTELENGTH_HEADER)
    if declared_body and len(content) <= validator.max_bytes:
        if int(declared_body) != len(content):
            return _failure_response(_rejected(
                f'Body length {len(content)} does not match declared '
                f'length {declared_body}',
            ))

    outcome = context.file_store.store(uid, filetype, content, ttl=ttl)
    if isinstance(outcome, Failure):
        return _failure_response(outcome)
    return JsonResponse(_stored_payload(outcome))


@signed_request
def delete(request: HttpRequest, context: ShareContext, uid: str) -> HttpResponse:
    """Delete one of the caller's files."""
    payload = _json_body(request, context.file_store.validator.max_bytes)
    if isinstance(payload, Failure):
        return _failure_response(payload)

    filename = payload.get('filename')
    if not isinstance(filename, str) or not filename.strip():
        return _failure_response(_rejected('Missing filename'))
    filename = filename.strip().rsplit('/', 1)[-1]

    category = None
    filetype = payload.get('filetype') or (
        filename.partition('.')[2] if '.' in filename else ''
    )
    if filetype:
        type_check = context.file_store.validator.check_type(str(filetype))
        if isinstance(type_check, Rejected):
            return _failure_response(_rejected(type_check.reason))
        category = type_check.category

    outcome = context.file_store.delete(uid, filename, category)
    if isinstance(outcome, Failure):
        return _failure_response(outcome)
    return JsonResponse({'success': True})


@require_GET
def serve_file(request: HttpRequest, directory: str, path: str) -> FileResponse:
    """Stream an active file from its public path.

    Raises:
        Http404: If the file is unknown, expired, or missing from disk.
    """
    context = get_context()
    category = _DIRECTORY_CATEGORIES.get(directory)
    if category is None:
        raise Http404('Unknown directory')

    filename = path.rsplit('/', 1)[-1]
    record = context.file_store.find_by_filename(category, filename)
    if record is None or not _matches_public_path(context, record, directory, path):
        raise Http404('File not found')

    try:
        handle = open(context.file_store.physical_path(record), 'rb')  # noqa: SIM115
    except FileNotFoundError:
        logger.warning('Index row without file: %s', record.storage_name)
        raise Http404('File not found') from None

    return FileResponse(handle, filename=record.filename)


@require_GET
def health(request: HttpRequest) -> JsonResponse:
    """Liveness probe."""
    return JsonResponse({'status': 'ok'})


def _failure_response(failure: Failure) -> JsonResponse:
    body: dict[str, Any] = {
        'success': False,
        'error': failure.message,
        'kind': failure.kind.value,
    }
    if failure.needs_credential_refresh:
        body['refresh'] = True
    return JsonResponse(body, status=failure.status_code)


def _rejected(reason: str, oversize: bool = False) -> Failure:
    return Failure(ErrorKind.VALIDATION_REJECTED, reason, oversize=oversize)


def _json_body(request: HttpRequest, max_bytes: int) -> dict[str, Any] | Failure:
    """Parse a JSON object body; anything else is a validation failure.

    The body is read from the stream with the upload limit as its cap, so
    notes up to the configured maximum are accepted.
    """
    raw = request.read(max_bytes + 1)
    if len(raw) > max_bytes:
        return _rejected(
            f'Body is too large, maximum is {max_bytes} bytes',
            oversize=True,
        )
    try:
        payload = json.loads(raw or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _rejected('Malformed JSON body')
    if not isinstance(payload, dict):
        return _rejected('Expected a JSON object')
    return payload


def _parse_ttl(raw: Any) -> int | None | Failure:
    """Read a TTL in seconds from a header or JSON value."""
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        return _rejected('Invalid expiration')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return _rejected(f'Invalid expiration: {raw}')


def _declared_length(request: HttpRequest) -> int | None | Failure:
    """Largest length the client announced, if any."""
    lengths = []
    for raw in (
        request.headers.get(BYTELENGTH_HEADER),
        request.META.get('CONTENT_LENGTH'),
    ):
        if not raw:
            continue
        try:
            lengths.append(int(raw))
        except ValueError:
            return _rejected(f'Invalid length: {raw}')
    return max(lengths) if lengths else None


def _existing_url(context: ShareContext, entry: dict[str, Any]) -> str | None | Failure:
    """Public URL of an active file matching a check request entry."""
    name = entry.get('hash')
    filetype = entry.get('filetype')
    if not isinstance(name, str) or not isinstance(filetype, str):
        return _rejected('Missing hash or filetype')

    type_check = context.file_store.validator.check_type(filetype)
    if isinstance(type_check, Rejected):
        return _rejected(type_check.reason)

    record = context.file_store.find_servable(name, type_check.category)
    if record is None:
        return None

    byte_length = entry.get('byteLength')
    if byte_length is not None:
        try:
            declared = int(byte_length)
        except (TypeError, ValueError):
            return _rejected(f'Invalid byteLength: {byte_length}')
        if declared != record.size_bytes:
            return None
    return context.file_store.public_url(record)


def _stored_payload(result: StoredResult) -> dict[str, Any]:
    payload: dict[str, Any] = {
        'success': True,
        'filename': result.filename,
        'url': result.url,
    }
    if result.expires_at is not None:
        payload['expires'] = result.expires_at.isoformat()
    return payload


def _matches_public_path(
    context: ShareContext,
    record: StoredFile,
    directory: str,
    path: str,
) -> bool:
    """Only the sharded path of a record serves it."""
    resolver = context.file_store.storage.resolver
    expected = resolver.relative(record.filename, Category(record.category))
    return expected == f'{directory}/{path}'
