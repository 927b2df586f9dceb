"""
AWS Signature Version 4 request signer.

Signs ``requests.PreparedRequest`` objects for HTTP APIs that have no SDK
service client (Amazon Gift Codes On Demand is the one this project talks to).

Signing is a pure computation over the request, a ``SigningContext`` and a
caller-supplied timestamp:

    canonical request -> string to sign -> HMAC key chain -> signature

and the result is written back as the ``Authorization``, ``X-Amz-Date`` and
(optionally) ``X-Amz-Security-Token`` headers. See
https://docs.aws.amazon.com/IAM/latest/UserGuide/create-signed-request.html
"""
import datetime as dt
import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import SplitResult, parse_qsl, quote, urlsplit

import requests
from botocore.credentials import Credentials

from logger_config import get_logger
from utils.exceptions import SigningError, ValidationError

logger = get_logger(__name__)

ALGORITHM = 'AWS4-HMAC-SHA256'
TERMINATOR = 'aws4_request'
TIMESTAMP_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_FORMAT = '%Y%m%d'
EMPTY_SHA256_HASH = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'

# Set or rewritten by clients, proxies or the transport after signing
UNSIGNED_HEADERS = frozenset({
    'authorization',
    'user-agent',
    'x-amzn-trace-id',
    'expect',
    'content-length',
    'transfer-encoding',
})
DEFAULT_PORTS = {'http': 80, 'https': 443}

HeaderPairs = Iterable[Tuple[str, Any]]


@dataclass(frozen=True)
class SigningContext:
    """Credentials and scope used to sign a single request."""

    access_key: str
    secret_key: str = field(repr=False)
    region: str
    service: str
    session_token: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_credentials(
        cls,
        credentials: Credentials,
        region: str,
        service: str
    ) -> "SigningContext":
        """
        Build a context from botocore credentials.

        Args:
            credentials: botocore Credentials (static or refreshable)
            region: AWS region the request is scoped to
            service: Signing name of the target service

        Returns:
            SigningContext holding a frozen snapshot of the credentials
        """
        frozen = credentials.get_frozen_credentials()
        return cls(
            access_key=frozen.access_key,
            secret_key=frozen.secret_key,
            region=region,
            service=service,
            session_token=frozen.token or None,
        )

    def validate(self) -> None:
        """
        Check that every value needed for signing is present.

        Raises:
            ValidationError: If a credential, the region or the service is empty
        """
        for name in ('access_key', 'secret_key', 'region', 'service'):
            if not getattr(self, name):
                raise ValidationError(
                    f'Signing context is missing {name}', field=name
                )


def to_utc(sign_time: dt.datetime) -> dt.datetime:
    """Normalize a signing time to UTC; naive datetimes are taken as UTC."""
    if not isinstance(sign_time, dt.datetime):
        raise ValidationError(
            'sign_time must be a datetime', field='sign_time', value=sign_time
        )
    if sign_time.tzinfo is None:
        return sign_time.replace(tzinfo=dt.timezone.utc)
    return sign_time.astimezone(dt.timezone.utc)


def canonical_uri(path: str) -> str:
    """Percent-encode a request path, keeping '/' and unreserved characters."""
    return quote(path or '/', safe='/~')


def canonical_query_string(query: str) -> str:
    """
    Build the canonical query string.

    Every key and value is percent-encoded and the pairs are sorted by key,
    then by value.
    """
    params = parse_qsl(query, keep_blank_values=True)
    encoded = sorted(
        (quote(key, safe='~'), quote(value, safe='~')) for key, value in params
    )
    return '&'.join(f'{key}={value}' for key, value in encoded)


def _normalize_value(value: Any) -> str:
    if isinstance(value, bytes):
        # HTTP header bytes are ISO-8859-1, as requests sends them
        value = value.decode('latin-1')
    return ' '.join(str(value).split())


def _group_headers(headers: HeaderPairs) -> Dict[str, str]:
    grouped: Dict[str, List[str]] = {}
    for name, value in headers:
        lname = name.strip().lower()
        if lname in UNSIGNED_HEADERS:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        grouped.setdefault(lname, []).extend(_normalize_value(v) for v in values)
    return {name: ','.join(grouped[name]) for name in sorted(grouped)}


def canonical_headers(headers: HeaderPairs) -> str:
    """
    Build the canonical headers block.

    Names are lower-cased and sorted, values trimmed with inner whitespace
    collapsed, and repeated names joined with ',' in their original order.
    Each entry ends with a newline.
    """
    return ''.join(
        f'{name}:{value}\n' for name, value in _group_headers(headers).items()
    )


def signed_headers(headers: HeaderPairs) -> str:
    """Sorted, ';'-joined list of the lower-cased header names that get signed."""
    return ';'.join(_group_headers(headers))


def payload_hash(body: Optional[bytes]) -> str:
    """Lowercase hex SHA-256 of the payload bytes."""
    if not body:
        return EMPTY_SHA256_HASH
    return hashlib.sha256(body).hexdigest()


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    headers: List[Tuple[str, Any]],
    hashed_payload: str
) -> str:
    """
    Assemble the canonical request.

    Args:
        method: HTTP method
        path: Raw request path
        query: Raw query string (without '?')
        headers: Header name/value pairs, duplicates allowed
        hashed_payload: Output of payload_hash()

    Returns:
        The six canonical components joined with newlines
    """
    return '\n'.join([
        method.upper(),
        canonical_uri(path),
        canonical_query_string(query),
        canonical_headers(headers),
        signed_headers(headers),
        hashed_payload,
    ])


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f'{date_stamp}/{region}/{service}/{TERMINATOR}'


def string_to_sign(timestamp: str, scope: str, canonical_request: str) -> str:
    hashed_request = hashlib.sha256(canonical_request.encode('utf-8')).hexdigest()
    return f'{ALGORITHM}\n{timestamp}\n{scope}\n{hashed_request}'


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str,
    date_stamp: str,
    region: str,
    service: str
) -> bytes:
    """
    Derive the SigV4 signing key.

    kDate    = HMAC("AWS4" + secret, date)
    kRegion  = HMAC(kDate, region)
    kService = HMAC(kRegion, service)
    kSigning = HMAC(kService, "aws4_request")
    """
    k_date = _hmac(f'AWS4{secret_key}'.encode('utf-8'), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def authorization_header(
    access_key: str,
    scope: str,
    signed: str,
    signature: str
) -> str:
    return (
        f'{ALGORITHM} Credential={access_key}/{scope}, '
        f'SignedHeaders={signed}, Signature={signature}'
    )


def host_header(parts: SplitResult) -> str:
    """Host header value for a URL, with the scheme's default port dropped."""
    host = parts.hostname
    if ':' in host:
        host = f'[{host}]'
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(parts.scheme) != port:
        host = f'{host}:{port}'
    return host


def _to_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        return data.encode('utf-8')
    return bytes(data)


class SigV4Signer:
    """Signs requests with AWS Signature Version 4."""

    def __init__(self, context: SigningContext) -> None:
        """
        Initialize signer.

        Args:
            context: Credentials, region and service to sign with

        Raises:
            ValidationError: If the context is incomplete
        """
        context.validate()
        self.context = context

    def canonical_request(
        self,
        request: requests.PreparedRequest,
        sign_time: dt.datetime
    ) -> str:
        """
        Return the canonical request that sign() would use, without signing.

        Useful when comparing against a server's "canonical request" in a
        signature mismatch error. Headers and str or seekable bodies are left
        untouched; a body that can only be read once is still replaced by the
        bytes read from it, with Content-Length set to match.
        """
        parts = self._split_url(request)
        timestamp = to_utc(sign_time).strftime(TIMESTAMP_FORMAT)
        body = self._read_body(request, encode_str=False)
        headers = self._headers_to_sign(request, parts, timestamp)
        return build_canonical_request(
            request.method, parts.path, parts.query, headers, payload_hash(body)
        )

    def sign(
        self,
        request: requests.PreparedRequest,
        sign_time: dt.datetime
    ) -> None:
        """
        Sign a prepared request in place.

        Adds X-Amz-Date, X-Amz-Security-Token (when the context carries a
        session token) and Authorization. The body is left sendable.

        Args:
            request: Prepared request about to be sent
            sign_time: Point in time the signature is valid for

        Raises:
            ValidationError: If the URL, method or sign_time is malformed
            SigningError: If the request body cannot be read
        """
        sign_time = to_utc(sign_time)
        parts = self._split_url(request)
        body = self._read_body(request)

        timestamp = sign_time.strftime(TIMESTAMP_FORMAT)
        date_stamp = sign_time.strftime(DATE_FORMAT)
        context = self.context

        headers = self._headers_to_sign(request, parts, timestamp)
        canonical = build_canonical_request(
            request.method, parts.path, parts.query, headers, payload_hash(body)
        )
        scope = credential_scope(date_stamp, context.region, context.service)
        signing_key = derive_signing_key(
            context.secret_key, date_stamp, context.region, context.service
        )
        signature = hmac.new(
            signing_key,
            string_to_sign(timestamp, scope, canonical).encode('utf-8'),
            hashlib.sha256
        ).hexdigest()
        signed = signed_headers(headers)

        request.headers['X-Amz-Date'] = timestamp
        if context.session_token:
            request.headers['X-Amz-Security-Token'] = context.session_token
        else:
            request.headers.pop('X-Amz-Security-Token', None)
        request.headers['Authorization'] = authorization_header(
            context.access_key, scope, signed, signature
        )
        logger.debug(
            f'Signed {request.method} {parts.path or "/"} for '
            f'{context.service}/{context.region} (signed headers: {signed})'
        )

    def _split_url(self, request: requests.PreparedRequest) -> SplitResult:
        if not request.method:
            raise ValidationError('Cannot sign request without a method', field='method')
        if not request.url:
            raise ValidationError('Cannot sign request without a URL', field='url')

        parts = urlsplit(request.url)
        if not parts.scheme or not parts.hostname:
            raise ValidationError(
                f'Cannot sign request with malformed URL: {request.url}',
                field='url',
                value=request.url
            )
        try:
            parts.port
        except ValueError as e:
            raise ValidationError(
                f'Cannot sign request with malformed URL: {request.url}',
                field='url',
                value=request.url
            ) from e
        return parts

    def _headers_to_sign(
        self,
        request: requests.PreparedRequest,
        parts: SplitResult,
        timestamp: str
    ) -> List[Tuple[str, Any]]:
        # Values from a previous signing attempt are replaced, not merged
        headers = [
            (name, value) for name, value in request.headers.items()
            if name.lower() not in ('x-amz-date', 'x-amz-security-token')
        ]
        headers.append(('x-amz-date', timestamp))
        if self.context.session_token:
            headers.append(('x-amz-security-token', self.context.session_token))
        if not any(name.lower() == 'host' for name, _ in headers):
            headers.append(('host', host_header(parts)))
        return headers

    def _read_body(
        self,
        request: requests.PreparedRequest,
        encode_str: bool = True
    ) -> bytes:
        """
        Read the request body for hashing without consuming it.

        Seekable streams are rewound; anything that can only be read once is
        replaced on the request by the bytes that were read. str bodies are
        swapped for their UTF-8 bytes only when encode_str is set.

        Raises:
            SigningError: If reading the body raises anything
        """
        body = request.body
        if body is None:
            return b''
        if isinstance(body, bytes):
            return body
        if isinstance(body, (bytearray, memoryview)):
            return bytes(body)
        if isinstance(body, str):
            data = body.encode('utf-8')
            if encode_str:
                self._replace_body(request, data)
            return data

        try:
            if hasattr(body, 'read'):
                seekable = getattr(body, 'seekable', None)
                if seekable is not None and seekable():
                    position = body.tell()
                    data = _to_bytes(body.read())
                    body.seek(position)
                    return data
                data = _to_bytes(body.read())
            else:
                data = b''.join(_to_bytes(chunk) for chunk in body)
        except Exception as e:
            logger.error(f'Failed to read body of {request.method} {request.url}: {str(e)}')
            raise SigningError(
                f'Failed to read request body: {str(e)}',
                url=request.url,
                method=request.method
            ) from e

        self._replace_body(request, data)
        return data

    @staticmethod
    def _replace_body(request: requests.PreparedRequest, data: bytes) -> None:
        request.body = data
        request.headers.pop('Transfer-Encoding', None)
        request.headers['Content-Length'] = str(len(data))
