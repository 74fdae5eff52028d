import base64

import pytest

from rtc_tokens.errors import InvalidArgumentError, InvalidSessionIdError
from rtc_tokens.model import SessionIdentifier
from rtc_tokens.session_id import decode_session_id, encode_session_id


def _service_style_id(body: str, version: int = 1) -> str:
    encoded = base64.urlsafe_b64encode(body.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{version}_{encoded}"


def test_decode_service_issued_identifier() -> None:
    session_id = _service_style_id("1~40000~127.0.0.1~Wed Mar 19 11:41:07 PDT 2014~0.80917274~")

    identifier = decode_session_id(session_id)

    assert identifier.account_key == 40000
    assert identifier.format_version == 1
    assert identifier.location_hint == "127.0.0.1"
    assert identifier.created_at == "Wed Mar 19 11:41:07 PDT 2014"
    assert identifier.nonce == "0.80917274"


def test_decode_ignores_unknown_trailing_fields() -> None:
    session_id = _service_style_id("2~40000~~Thu Jan 01 2026~0.5~future~fields~here", version=2)

    identifier = decode_session_id(session_id)

    assert identifier.account_key == 40000
    assert identifier.format_version == 2
    assert identifier.location_hint is None


@pytest.mark.parametrize(
    "identifier",
    [
        SessionIdentifier(account_key=40000, created_at="Wed Mar 19 11:41:07 PDT 2014", nonce="0.80917274"),
        SessionIdentifier(
            account_key=12345678,
            created_at="1700000000",
            nonce="deadbeef",
            format_version=2,
            location_hint="10.1.2.3",
        ),
    ],
)
def test_encode_then_decode_returns_identifier(identifier: SessionIdentifier) -> None:
    assert decode_session_id(encode_session_id(identifier)) == identifier


def test_empty_location_hint_is_normalized_to_none() -> None:
    identifier = SessionIdentifier(account_key=40000, created_at="1700000000", nonce="0.5", location_hint="")

    assert identifier.location_hint is None
    assert decode_session_id(encode_session_id(identifier)) == identifier


def test_empty_session_id_is_invalid_argument() -> None:
    with pytest.raises(InvalidSessionIdError) as excinfo:
        decode_session_id("")
    assert isinstance(excinfo.value, InvalidArgumentError)


@pytest.mark.parametrize(
    "session_id",
    [
        "MX40MDAwMH4",  # no version prefix
        "1_not*base64",
        "1_" + base64.urlsafe_b64encode(b"1~~127.0.0.1").decode("ascii"),  # empty key
        "1_" + base64.urlsafe_b64encode(b"1~abc~127.0.0.1").decode("ascii"),  # non-numeric key
        "1_" + base64.urlsafe_b64encode(b"1").decode("ascii"),  # key absent
    ],
)
def test_malformed_session_ids_raise(session_id: str) -> None:
    with pytest.raises(InvalidSessionIdError):
        decode_session_id(session_id)
