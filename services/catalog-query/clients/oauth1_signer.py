"""
OAuth 1.0a (HMAC-SHA1) request signing for the primary store API.
"""
import base64
import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlsplit

from services.exceptions import SigningError

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class OAuth1Credentials:
    """Consumer and access-token key pairs issued for the store API."""
    consumer_key: str
    consumer_secret: str
    access_token: str
    token_secret: str


def percent_encode(value: str) -> str:
    """RFC 3986 encoding: only ALPHA / DIGIT / "-" / "." / "_" / "~" pass through."""
    try:
        return quote(value.encode("utf-8"), safe="-._~")
    except UnicodeEncodeError as e:
        raise SigningError(f"Cannot UTF-8 encode value for signing: {e}") from e


def generate_nonce() -> str:
    return uuid.uuid4().hex


def normalized_base_url(url: str) -> str:
    """scheme://host[:port]/path with scheme and host lowercased and default ports dropped."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        raise SigningError("URL must be absolute to be signed", url=url)
    try:
        port = parts.port
    except ValueError as e:
        raise SigningError(f"Invalid port in URL: {e}", url=url) from e
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"
    return f"{scheme}://{netloc}{parts.path or '/'}"


def build_parameter_string(params: Iterable[Tuple[str, str]]) -> str:
    """Encode, sort by key then value, and join as key=value pairs."""
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def build_signature_base_string(method: str, url: str, oauth_params: Iterable[Tuple[str, str]]) -> str:
    query_params = parse_qsl(urlsplit(url).query, keep_blank_values=True)
    parameter_string = build_parameter_string(list(oauth_params) + query_params)
    return "&".join([
        method.upper(),
        percent_encode(normalized_base_url(url)),
        percent_encode(parameter_string),
    ])


def compute_signature(base_string: str, consumer_secret: str, token_secret: str) -> str:
    signing_key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    try:
        digest = hmac.new(
            signing_key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1
        ).digest()
    except (UnicodeEncodeError, ValueError) as e:
        raise SigningError(f"HMAC-SHA1 signing failed: {e}") from e
    return base64.b64encode(digest).decode("ascii")


def sign_request(
    method: str,
    url: str,
    credentials: OAuth1Credentials,
    timestamp: Optional[int] = None,
    nonce: Optional[str] = None,
) -> str:
    """
    Build the OAuth1 Authorization header value for a single request.

    Query parameters of `url` take part in the signature but are not
    repeated in the header. `timestamp` and `nonce` are generated per call
    unless given; with both fixed the result is deterministic.

    Raises:
        SigningError: If the method is empty or the URL is not absolute.
    """
    if not method or not method.strip():
        raise SigningError("HTTP method is required for signing", url=url)

    oauth_params: List[Tuple[str, str]] = [
        ("oauth_consumer_key", credentials.consumer_key),
        ("oauth_token", credentials.access_token),
        ("oauth_signature_method", SIGNATURE_METHOD),
        ("oauth_timestamp", str(timestamp if timestamp is not None else int(time.time()))),
        ("oauth_nonce", nonce if nonce is not None else generate_nonce()),
        ("oauth_version", OAUTH_VERSION),
    ]

    base_string = build_signature_base_string(method, url, oauth_params)
    signature = compute_signature(base_string, credentials.consumer_secret, credentials.token_secret)

    header_params = oauth_params + [("oauth_signature", signature)]
    return "OAuth " + ", ".join(
        f'{percent_encode(k)}="{percent_encode(v)}"' for k, v in header_params
    )
