"""
AWS Signature Version 4 presigning for RDS IAM database authentication.

Builds the canonical request for a database ``connect`` action and signs it
in query-string form, so the result can be handed to a database driver as a
password. Every function here is a pure transform of its arguments.

see: https://docs.aws.amazon.com/IAM/latest/UserGuide/create-signed-request.html
"""

import datetime
import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple
from urllib.parse import quote

from .exceptions import EncodingError

ALGORITHM = 'AWS4-HMAC-SHA256'
# Signing name of the RDS IAM authentication endpoint, not the 'rds' API.
SERVICE = 'rds-db'
CONNECT_ACTION = 'connect'
CONNECT_PATH = '/'
SIGNED_HEADERS = 'host'
EMPTY_PAYLOAD_HASH = hashlib.sha256(b'').hexdigest()

_SAFE_CHARS = '-_.~'
_UNRESERVED_RE = re.compile(r'[A-Za-z0-9\-._~]+')
_HOST_RE = re.compile(r'[A-Za-z0-9\-._~]+|\[[0-9A-Fa-f:.]+\]')

QueryParams = List[Tuple[str, str]]


class Credentials(NamedTuple):
    """A point-in-time copy of IAM credential material."""

    access_key: str
    secret_key: str
    token: Optional[str] = None

    def __repr__(self) -> str:
        token = "'***'" if self.token else 'None'
        return f"Credentials(access_key={self.access_key!r}, secret_key='***', token={token})"


@dataclass(frozen=True)
class PresignRequest:
    """Everything needed to sign one ``connect`` request.

    ``timestamp`` is interpreted as UTC when it carries no tzinfo.
    """

    host: str
    port: int
    user: str
    region: str
    expires_in: int
    timestamp: datetime.datetime
    service: str = SERVICE

    @property
    def utc_timestamp(self) -> datetime.datetime:
        if self.timestamp.tzinfo is None:
            return self.timestamp
        return self.timestamp.astimezone(datetime.timezone.utc)

    @property
    def amz_date(self) -> str:
        return self.utc_timestamp.strftime('%Y%m%dT%H%M%SZ')

    @property
    def datestamp(self) -> str:
        return self.utc_timestamp.strftime('%Y%m%d')

    @property
    def credential_scope(self) -> str:
        return '/'.join([self.datestamp, self.region, self.service, 'aws4_request'])

    @property
    def host_header(self) -> str:
        return f'{self.host.lower()}:{self.port}'


def _utf8(value: str) -> bytes:
    try:
        return value.encode('utf-8')
    except UnicodeEncodeError as exc:
        raise EncodingError(f'{value!r} is not valid UTF-8 text') from exc


def _sign(key: bytes, msg: str) -> bytes:
    return hmac.new(key, _utf8(msg), hashlib.sha256).digest()


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(_utf8(value)).hexdigest()


def percent_encode(value: str) -> str:
    """Percent-encode everything outside the SigV4 unreserved set.

    Unlike ``quote_plus`` this encodes ``/`` as ``%2F`` and space as ``%20``.
    """
    try:
        return quote(value, safe=_SAFE_CHARS)
    except UnicodeEncodeError as exc:
        raise EncodingError(f'{value!r} is not valid UTF-8 text') from exc


def check_request(request: PresignRequest, credentials: Credentials) -> None:
    """Raise EncodingError if the request cannot be signed as given."""
    if not isinstance(request.host, str) or not _HOST_RE.fullmatch(request.host):
        raise EncodingError(f'Host {request.host!r} cannot be used in a canonical request')
    if isinstance(request.port, bool) or not isinstance(request.port, int) or not 0 <= request.port <= 0xFFFF:
        raise EncodingError(f'Port {request.port!r} is not a 16-bit unsigned integer')
    if not isinstance(request.user, str):
        raise EncodingError(f'User {request.user!r} is not a string')
    for name in ('region', 'service'):
        value = getattr(request, name)
        if not isinstance(value, str) or not _UNRESERVED_RE.fullmatch(value):
            raise EncodingError(f'{name.capitalize()} {value!r} cannot be used in a credential scope')
    if isinstance(request.expires_in, bool) or not isinstance(request.expires_in, int) or request.expires_in < 0:
        raise EncodingError(f'Expiration {request.expires_in!r} is not a non-negative number of seconds')
    if not isinstance(credentials.access_key, str) or not _UNRESERVED_RE.fullmatch(credentials.access_key):
        raise EncodingError('Access key id cannot be used in a credential scope')
    if not isinstance(credentials.secret_key, str):
        raise EncodingError('Secret access key is not a string')


def canonical_query_params(request: PresignRequest, credentials: Credentials) -> QueryParams:
    """Return the encoded query parameters sorted by name."""
    params = {
        'Action': CONNECT_ACTION,
        'DBUser': request.user,
        'X-Amz-Algorithm': ALGORITHM,
        'X-Amz-Credential': f'{credentials.access_key}/{request.credential_scope}',
        'X-Amz-Date': request.amz_date,
        'X-Amz-Expires': str(request.expires_in),
        'X-Amz-SignedHeaders': SIGNED_HEADERS,
    }
    if credentials.token:
        params['X-Amz-Security-Token'] = credentials.token
    return sorted((percent_encode(name), percent_encode(value)) for name, value in params.items())


def canonical_query_string(request: PresignRequest, credentials: Credentials) -> str:
    return '&'.join(f'{name}={value}' for name, value in canonical_query_params(request, credentials))


def canonical_request(request: PresignRequest, query_string: str) -> str:
    # Note the trailing newline after the single canonical header.
    canonical_headers = f'host:{request.host_header}\n'
    return '\n'.join([
        'GET',
        CONNECT_PATH,
        query_string,
        canonical_headers,
        SIGNED_HEADERS,
        EMPTY_PAYLOAD_HASH,
    ])


def string_to_sign(request: PresignRequest, canonical: str) -> str:
    return '\n'.join([
        ALGORITHM,
        request.amz_date,
        request.credential_scope,
        _sha256_hex(canonical),
    ])


def derive_signing_key(secret_key: str, datestamp: str, region: str, service: str) -> bytes:
    k_date = _sign(_utf8('AWS4' + secret_key), datestamp)
    k_region = _sign(k_date, region)
    k_service = _sign(k_region, service)
    return _sign(k_service, 'aws4_request')


def signature(request: PresignRequest, credentials: Credentials, query_string: str) -> str:
    """Hex-encoded signature over the canonical request for ``query_string``."""
    key = derive_signing_key(credentials.secret_key, request.datestamp, request.region, request.service)
    to_sign = string_to_sign(request, canonical_request(request, query_string))
    return hmac.new(key, _utf8(to_sign), hashlib.sha256).hexdigest()


def presign(request: PresignRequest, credentials: Credentials) -> str:
    """
    Sign ``request`` with ``credentials`` and return the presigned query string.

    The result is the canonical query string with ``X-Amz-Signature``
    appended, ready to follow ``<host>:<port>/?`` in a token.

    Raises:
        EncodingError: if a request value cannot be canonicalized.
    """
    check_request(request, credentials)
    query_string = canonical_query_string(request, credentials)
    return f'{query_string}&X-Amz-Signature={signature(request, credentials, query_string)}'
