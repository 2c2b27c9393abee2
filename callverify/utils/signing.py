"""Request signing for the telephony sandbox endpoints.

The provider signs a request by appending every POST parameter, sorted by
name, to the full URL as ``name + value`` and computing an HMAC-SHA1 of the
result with the account auth token. The digest travels base64 encoded in the
``X-Twilio-Signature`` header.
"""
import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"


def signature_payload(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build the string that gets signed: URL followed by sorted key/value pairs."""
    params = params or {}
    return url + "".join(f"{key}{params[key]}" for key in sorted(params))


def generate_signature(url: str, params: Optional[Mapping[str, Any]], auth_token: str) -> str:
    """Generate the base64 HMAC-SHA1 request signature."""
    if not auth_token:
        raise ValueError("auth_token is required to sign requests")

    payload = signature_payload(url, params)
    digest = hmac.new(
        auth_token.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_signature(url: str, params: Optional[Mapping[str, Any]], signature: str, auth_token: str) -> bool:
    """Check a received signature against the expected one."""
    if not signature:
        return False
    expected = generate_signature(url, params, auth_token)
    return hmac.compare_digest(signature, expected)


def build_basic_auth(user: str, secret: str) -> str:
    """Build an HTTP basic Authorization header value."""
    token = base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def build_request_headers(signature: str, auth_token: str) -> Dict[str, str]:
    """Headers for a signed sandbox request."""
    return {
        "Authorization": auth_token,
        "Content-Type": "application/json",
        SIGNATURE_HEADER: signature
    }
