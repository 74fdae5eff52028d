import base64

import pytest

from rtc_tokens.canonical import (
    CanonicalEncoder,
    urlsafe_b64decode_lenient,
    urlsafe_b64encode_unpadded,
)
from rtc_tokens.errors import MalformedEncodingError


def test_keyed_encoding_is_deterministic_and_unpadded() -> None:
    encoder = CanonicalEncoder("&")
    fields = [("role", "publisher"), ("connection_data", "name=Bob & co")]

    first = encoder.encode(fields)
    second = encoder.encode(fields)

    assert first == second
    assert "=" not in first
    assert "+" not in first and "/" not in first
    assert encoder.decode(first) == fields


def test_keyed_serialization_quotes_values() -> None:
    encoder = CanonicalEncoder("&")
    raw = encoder.serialize([("a", "x y"), ("b", "1&2=3")])

    assert raw == b"a=x%20y&b=1%262%3D3"


def test_positional_layout_ignores_trailing_fields() -> None:
    encoder = CanonicalEncoder("~", field_names=("first", "second"), required=("first",))
    text = urlsafe_b64encode_unpadded(b"one~two~three~")

    assert encoder.decode(text) == [("first", "one"), ("second", "two")]


def test_positional_layout_rejects_separator_in_value() -> None:
    encoder = CanonicalEncoder("~", field_names=("first",))

    with pytest.raises(MalformedEncodingError):
        encoder.encode([("first", "a~b")])


def test_decode_tolerates_one_or_two_padding_characters() -> None:
    for raw in (b"ab", b"abcd"):
        padded = base64.urlsafe_b64encode(raw).decode("ascii")
        assert padded.endswith("=")
        assert urlsafe_b64decode_lenient(padded) == raw
        assert urlsafe_b64decode_lenient(padded.rstrip("=")) == raw


@pytest.mark.parametrize("text", ["", "abc+def", "abc/def", "ab cd", "abcd===", "a"])
def test_decode_rejects_malformed_text(text: str) -> None:
    with pytest.raises(MalformedEncodingError):
        urlsafe_b64decode_lenient(text)


def test_decode_rejects_field_without_separator() -> None:
    encoder = CanonicalEncoder("&")
    text = urlsafe_b64encode_unpadded(b"role=publisher&garbage")

    with pytest.raises(MalformedEncodingError):
        encoder.decode(text)


def test_decode_rejects_missing_required_field() -> None:
    encoder = CanonicalEncoder("&", required=("nonce",))
    text = encoder.encode([("role", "publisher")])

    with pytest.raises(MalformedEncodingError) as excinfo:
        encoder.decode(text)
    assert "nonce" in str(excinfo.value)


def test_decode_rejects_invalid_utf8() -> None:
    encoder = CanonicalEncoder("&")

    with pytest.raises(MalformedEncodingError):
        encoder.decode(urlsafe_b64encode_unpadded(b"\xff\xfe=1"))
