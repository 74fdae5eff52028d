"""Reversible text encoding shared by session identifiers and token payloads.

A record is an ordered list of ``(key, value)`` string pairs. The encoder joins
the record with a fixed separator and wraps the resulting blob in URL-safe
base64 with the padding stripped, so the output can be embedded in URLs and
query strings unchanged.

Two layouts are supported:

* keyed: ``key=value`` pairs, values percent-quoted (token payloads);
* positional: bare values in a fixed field order (session identifiers). Values
  beyond the known field names are dropped on decode so that identifiers
  minted by newer service versions remain readable.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import List, Sequence, Tuple
from urllib.parse import quote, unquote

from .errors import MalformedEncodingError

logger = logging.getLogger(__name__)

Field = Tuple[str, str]

_URLSAFE_RE = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")


def urlsafe_b64encode_unpadded(raw: bytes) -> str:
    """Return URL-safe base64 text for ``raw`` without ``=`` padding."""

    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def urlsafe_b64decode_lenient(text: str) -> bytes:
    """Decode URL-safe base64, accepting zero to two trailing ``=``."""

    if not text:
        raise MalformedEncodingError("value is empty")
    if not _URLSAFE_RE.match(text):
        raise MalformedEncodingError("value contains characters outside the URL-safe alphabet")
    body = text.rstrip("=")
    if len(body) % 4 == 1:
        raise MalformedEncodingError("value has an impossible base64 length")
    padded = body + "=" * (-len(body) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:  # pragma: no cover - guarded by the regex above
        raise MalformedEncodingError(f"invalid base64 data: {exc}") from exc


class CanonicalEncoder:
    """Encode and decode ordered records using a fixed separator."""

    def __init__(
        self,
        separator: str,
        *,
        field_names: Sequence[str] | None = None,
        required: Sequence[str] = (),
    ) -> None:
        if not separator or separator == "=":
            raise ValueError("separator must be a non-empty string other than '='")
        self.separator = separator
        self.field_names = tuple(field_names) if field_names is not None else None
        self.required = tuple(required)

    @property
    def positional(self) -> bool:
        return self.field_names is not None

    def serialize(self, fields: Sequence[Field]) -> bytes:
        """Join ``fields`` into the raw blob that :meth:`encode` wraps."""

        if self.positional:
            return self._serialize_positional(fields).encode("utf-8")
        pieces = []
        for key, value in fields:
            if not key or "=" in key or self.separator in key:
                raise MalformedEncodingError(f"invalid field name: {key!r}")
            pieces.append(f"{key}={quote(str(value), safe='')}")
        return self.separator.join(pieces).encode("utf-8")

    def _serialize_positional(self, fields: Sequence[Field]) -> str:
        assert self.field_names is not None
        values = dict(fields)
        unknown = set(values) - set(self.field_names)
        if unknown:
            raise MalformedEncodingError(f"unknown fields for this layout: {sorted(unknown)}")
        ordered = []
        for name in self.field_names:
            value = str(values.get(name, ""))
            if self.separator in value:
                raise MalformedEncodingError(
                    f"field {name!r} may not contain the separator {self.separator!r}"
                )
            ordered.append(value)
        return self.separator.join(ordered)

    def parse(self, raw: bytes) -> List[Field]:
        """Split a decoded blob back into ordered fields."""

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEncodingError("decoded value is not valid UTF-8") from exc
        if not text:
            raise MalformedEncodingError("decoded value is empty")

        pieces = text.split(self.separator)
        if self.positional:
            assert self.field_names is not None
            if len(pieces) > len(self.field_names):
                logger.debug(
                    "Ignoring %d trailing field(s)", len(pieces) - len(self.field_names)
                )
            fields = list(zip(self.field_names, pieces))
        else:
            fields = []
            for piece in pieces:
                key, sep, value = piece.partition("=")
                if not sep or not key:
                    raise MalformedEncodingError(f"field is not a key=value pair: {piece!r}")
                fields.append((key, unquote(value)))

        present = {key for key, value in fields if value != ""}
        missing = [name for name in self.required if name not in present]
        if missing:
            raise MalformedEncodingError(f"required field(s) absent: {missing}")
        return fields

    def encode(self, fields: Sequence[Field]) -> str:
        """Return the URL-safe unpadded text form of ``fields``."""

        return urlsafe_b64encode_unpadded(self.serialize(fields))

    def decode(self, text: str) -> List[Field]:
        """Return the ordered fields carried by ``text``."""

        return self.parse(urlsafe_b64decode_lenient(text))
