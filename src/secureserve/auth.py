"""Authentication gate for the file server.

Provides HTTP Basic credential parsing and verification against the single
configured Credential.
"""

import base64
import binascii
import hmac
import logging
from typing import Optional

from secureserve.password import Credential

logger = logging.getLogger(__name__)

DEFAULT_REALM = "Restricted"


class AuthError(Exception):
    """Authentication error with error code and HTTP status."""

    def __init__(self, code: str, message: str, http_status: int = 401):
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(f"{code}: {message}")


def is_valid_realm(realm) -> bool:
    """Check that a realm fits in a quoted, latin-1 encoded header value.

    Only printable ASCII is allowed, without quotes or backslashes.
    """
    if not isinstance(realm, str):
        return False
    return all(0x20 <= ord(c) < 0x7F for c in realm) and not set(realm) & {'"', "\\"}


def challenge_header(realm: str = DEFAULT_REALM) -> str:
    """Build the WWW-Authenticate value for a Basic challenge."""
    return f'Basic realm="{realm}"'


def parse_basic_auth(auth_header: Optional[str]) -> tuple[str, str]:
    """Extract (username, password) from a Basic Authorization header.

    Args:
        auth_header: Authorization header value

    Returns:
        (username, password)

    Raises:
        AuthError: If the header is missing or malformed
    """
    if not auth_header:
        raise AuthError("E300", "Authorization required")

    scheme, _, encoded = auth_header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        raise AuthError("E300", "Malformed credentials: expected Basic scheme")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise AuthError("E300", "Malformed credentials: invalid encoding")

    username, sep, password = decoded.partition(":")
    if not sep:
        raise AuthError("E300", "Malformed credentials: missing separator")

    return username, password


def validate_basic_auth(
    auth_header: Optional[str],
    credential: Credential,
) -> Optional[AuthError]:
    """Validate a Basic Authorization header against the credential.

    Both fields are always compared, in constant time.

    Args:
        auth_header: Authorization header from request
        credential: The accepted username/password

    Returns:
        None if auth is valid, or AuthError on failure
    """
    try:
        username, password = parse_basic_auth(auth_header)
    except AuthError as e:
        return e

    user_ok = hmac.compare_digest(username.encode(), credential.username.encode())
    pass_ok = hmac.compare_digest(password.encode(), credential.password.encode())
    if not (user_ok and pass_ok):
        return AuthError("E301", "Invalid credentials")

    return None
