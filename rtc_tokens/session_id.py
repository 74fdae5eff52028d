"""Codec for session identifiers issued by the session service.

A session id looks like ``1_MX40MDAwMH4xMjcuMC4wLjF-...``: a numeric format
version, an underscore, then a canonical positional record whose fields are
separated by ``~``::

    <format>~<account_key>~<location_hint>~<created_at>~<nonce>[~...]

The SDK only needs to read identifiers; :func:`encode_session_id` exists so
tests and fixtures can build them.
"""

from __future__ import annotations

import logging
import re

from .canonical import CanonicalEncoder
from .errors import InvalidSessionIdError, MalformedEncodingError
from .model import SessionIdentifier

logger = logging.getLogger(__name__)

SESSION_ID_SEPARATOR = "~"
SESSION_ID_FIELDS = ("format", "account_key", "location_hint", "created_at", "nonce")

_PREFIX_RE = re.compile(r"^(\d+)_(.+)$", re.DOTALL)

SESSION_ID_ENCODER = CanonicalEncoder(
    SESSION_ID_SEPARATOR,
    field_names=SESSION_ID_FIELDS,
    required=("account_key",),
)


def decode_session_id(session_id: str) -> SessionIdentifier:
    """Decode ``session_id`` without contacting the service."""

    if not session_id:
        raise InvalidSessionIdError("Session id must be a non-empty string")

    match = _PREFIX_RE.match(session_id)
    if match is None:
        raise InvalidSessionIdError("Session id is missing its format version prefix")
    format_version = int(match.group(1))

    try:
        fields = dict(SESSION_ID_ENCODER.decode(match.group(2)))
    except MalformedEncodingError as exc:
        raise InvalidSessionIdError(f"Session id could not be decoded: {exc}") from exc

    raw_key = fields["account_key"]
    try:
        account_key = int(raw_key)
    except ValueError as exc:
        raise InvalidSessionIdError(f"Session id carries a non-numeric account key: {raw_key!r}") from exc

    identifier = SessionIdentifier(
        account_key=account_key,
        created_at=fields.get("created_at", ""),
        nonce=fields.get("nonce", ""),
        format_version=format_version,
        location_hint=fields.get("location_hint") or None,
    )
    logger.debug(
        "Decoded session id (format %d, account %d)", format_version, account_key
    )
    return identifier


def encode_session_id(identifier: SessionIdentifier) -> str:
    """Build the wire form of ``identifier``."""

    body = SESSION_ID_ENCODER.encode(
        [
            ("format", str(identifier.format_version)),
            ("account_key", str(identifier.account_key)),
            ("location_hint", identifier.location_hint or ""),
            ("created_at", identifier.created_at),
            ("nonce", identifier.nonce),
        ]
    )
    return f"{identifier.format_version}_{body}"
