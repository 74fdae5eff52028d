"""HMAC signing and assembly of token strings.

Wire format::

    T1==<base64url(partner_id=..&session_id=..&...)>&sig=<hex HMAC-SHA1>

The HMAC key is the account secret and the message is the serialized payload
blob, before base64 wrapping.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.hmac import HMAC

from .canonical import CanonicalEncoder, urlsafe_b64decode_lenient, urlsafe_b64encode_unpadded
from .errors import MalformedEncodingError, SigningError
from .model import TokenPayload

logger = logging.getLogger(__name__)

SIGNATURE_MARKER = "&sig="
TOKEN_FIELD_SEPARATOR = "&"
REQUIRED_TOKEN_FIELDS = (
    "partner_id",
    "session_id",
    "create_time",
    "expire_time",
    "role",
    "nonce",
)

TOKEN_ENCODER = CanonicalEncoder(TOKEN_FIELD_SEPARATOR, required=REQUIRED_TOKEN_FIELDS)

_VERSION_TAG_RE = re.compile(r"^(T(\d+)==)")
_HEX_RE = re.compile(r"^[0-9a-f]+$")


def version_tag(signature_version: int) -> str:
    return f"T{signature_version}=="


def _hmac(secret: bytes) -> HMAC:
    if not secret:
        raise SigningError("Account secret is empty; cannot sign tokens")
    try:
        return HMAC(secret, hashes.SHA1())
    except (UnsupportedAlgorithm, TypeError, ValueError) as exc:
        raise SigningError(f"HMAC backend failure: {exc}") from exc


def sign(serialized_payload: bytes, secret: bytes) -> bytes:
    """Return the HMAC-SHA1 of ``serialized_payload`` keyed by ``secret``."""

    mac = _hmac(secret)
    mac.update(serialized_payload)
    return mac.finalize()


def assemble(tag: str, serialized_payload: bytes, signature: bytes) -> str:
    """Concatenate version tag, encoded payload and hex signature."""

    return f"{tag}{urlsafe_b64encode_unpadded(serialized_payload)}{SIGNATURE_MARKER}{signature.hex()}"


def sign_payload(payload: TokenPayload, secret: bytes) -> str:
    """Serialize, sign and assemble ``payload`` into a token string."""

    serialized = TOKEN_ENCODER.serialize(payload.to_fields())
    signature = sign(serialized, secret)
    return assemble(version_tag(payload.signature_version), serialized, signature)


def parse_token(token: str) -> Tuple[str, List[Tuple[str, str]], bytes, bytes]:
    """Split ``token`` into ``(tag, fields, serialized_payload, signature)``.

    No signature check is performed; see :func:`verify_token`.
    """

    if not token:
        raise MalformedEncodingError("Token is empty")
    match = _VERSION_TAG_RE.match(token)
    if match is None:
        raise MalformedEncodingError("Token does not start with a version tag")
    tag = match.group(1)
    encoded, marker, sig_hex = token[len(tag):].rpartition(SIGNATURE_MARKER)
    if not marker or not encoded:
        raise MalformedEncodingError("Token is missing its signature field")
    if not _HEX_RE.match(sig_hex) or len(sig_hex) % 2:
        raise MalformedEncodingError("Token signature is not lowercase hex")
    serialized = urlsafe_b64decode_lenient(encoded)
    fields = TOKEN_ENCODER.parse(serialized)
    return tag, fields, serialized, bytes.fromhex(sig_hex)


def decode_token(token: str) -> Dict[str, str]:
    """Return the payload fields of ``token`` as a dict, unverified."""

    _, fields, _, _ = parse_token(token)
    return dict(fields)


def verify_token(token: str, secret: bytes) -> Dict[str, str]:
    """Return the payload fields of ``token`` after checking its signature."""

    _, fields, serialized, signature = parse_token(token)
    mac = _hmac(secret)
    mac.update(serialized)
    try:
        mac.verify(signature)
    except InvalidSignature as exc:
        logger.debug("Token signature mismatch")
        raise SigningError("Token signature does not match") from exc
    return dict(fields)
