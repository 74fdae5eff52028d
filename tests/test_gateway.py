from __future__ import annotations

import json
from typing import Any

import jwt
import pytest
import requests

from rtc_tokens import SessionClient
from rtc_tokens.config import ClientConfig
from rtc_tokens.errors import ErrorKind, InvalidArgumentError, InvalidSessionIdError, RequestError
from rtc_tokens.gateway import AUTH_HEADER, SessionServiceGateway
from rtc_tokens.model import ArchiveProperties, MediaMode, OutputMode, SessionProperties

ARCHIVE_JSON = {
    "id": "b40ef09b-3811-4726-b508-e41a0f96c68f",
    "sessionId": "1_MX40MDAwMH5-",
    "status": "started",
    "name": "Daily sync",
    "createdAt": 1700000000000,
    "size": 0,
}


class StubResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)
        self.url = "https://api.example.test"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class StubHTTPSession:
    def __init__(self, *responses: StubResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


def _config() -> ClientConfig:
    return ClientConfig(account_key=40000, account_secret="abc123", api_url="https://api.example.test")


@pytest.fixture
def make_client():
    created: list[SessionClient] = []

    def _make(*responses: StubResponse | Exception) -> tuple[SessionClient, StubHTTPSession]:
        http = StubHTTPSession(*responses)
        client = SessionClient(
            40000, "abc123", gateway=SessionServiceGateway(_config(), session=http)  # type: ignore[arg-type]
        )
        created.append(client)
        return client, http

    yield _make
    for client in created:
        client.close()


def test_auth_header_is_signed_project_jwt(make_client) -> None:
    client, http = make_client(StubResponse(body=ARCHIVE_JSON))

    client.get_archive(ARCHIVE_JSON["id"]).result(timeout=5)

    token = http.calls[0]["headers"][AUTH_HEADER]
    claims = jwt.decode(token, "abc123", algorithms=["HS256"])
    assert claims["iss"] == "40000"
    assert claims["ist"] == "project"
    assert claims["exp"] - claims["iat"] == 180


def test_auth_header_accepts_binary_secret() -> None:
    secret = b"\xff\xfe\x00secret"
    http = StubHTTPSession(StubResponse(body=ARCHIVE_JSON))
    config = ClientConfig(account_key=40000, account_secret=secret, api_url="https://api.example.test")
    gateway = SessionServiceGateway(config, session=http)  # type: ignore[arg-type]

    try:
        gateway.get_archive(ARCHIVE_JSON["id"]).result(timeout=5)
    finally:
        gateway.close()

    claims = jwt.decode(http.calls[0]["headers"][AUTH_HEADER], secret, algorithms=["HS256"])
    assert claims["iss"] == "40000"


def test_create_session_posts_properties(make_client) -> None:
    client, http = make_client(StubResponse(body=[{"session_id": "1_MX40MDAwMH5-"}]))
    properties = SessionProperties(media_mode=MediaMode.ROUTED, location="10.1.200.30")

    session = client.create_session(properties).result(timeout=5)

    assert session.session_id == "1_MX40MDAwMH5-"
    assert session.properties == properties
    call = http.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.example.test/session/create"
    assert call["data"] == {
        "p2p.preference": "disabled",
        "archiveMode": "manual",
        "location": "10.1.200.30",
    }


def test_create_session_rejects_unexpected_count(make_client) -> None:
    client, _ = make_client(StubResponse(body=[]))

    with pytest.raises(RequestError, match="Unexpected number of sessions"):
        client.create_session().result(timeout=5)


def test_archive_lifecycle(make_client) -> None:
    stopped = dict(ARCHIVE_JSON, status="stopped")
    client, http = make_client(
        StubResponse(body=ARCHIVE_JSON),
        StubResponse(body=stopped),
        StubResponse(status_code=204, text=""),
    )
    properties = ArchiveProperties(name="Daily sync", has_video=False, output_mode=OutputMode.INDIVIDUAL)

    started = client.start_archive("1_MX40MDAwMH5-", properties).result(timeout=5)
    halted = client.stop_archive(started.id).result(timeout=5)
    assert client.delete_archive(started.id).result(timeout=5) is None

    assert started.status == "started"
    assert started.name == "Daily sync"
    assert halted.status == "stopped"
    base = "https://api.example.test/v2/project/40000/archive"
    assert [(c["method"], c["url"]) for c in http.calls] == [
        ("POST", base),
        ("POST", f"{base}/{started.id}/stop"),
        ("DELETE", f"{base}/{started.id}"),
    ]
    assert http.calls[0]["json"] == {
        "sessionId": "1_MX40MDAwMH5-",
        "hasAudio": True,
        "hasVideo": False,
        "outputMode": "individual",
        "name": "Daily sync",
    }


def test_start_archive_requires_session_id(make_client) -> None:
    client, http = make_client()

    future = client.start_archive("")

    with pytest.raises(InvalidSessionIdError):
        future.result(timeout=5)
    assert http.calls == []


def test_list_archives(make_client) -> None:
    client, http = make_client(
        StubResponse(body={"count": 2, "items": [ARCHIVE_JSON, dict(ARCHIVE_JSON, id="second")]}),
        StubResponse(body={"count": 1, "items": [ARCHIVE_JSON]}),
    )

    page = client.list_archives(offset=5, count=2).result(timeout=5)
    by_session = client.list_archives(session_id="1_MX40MDAwMH5-").result(timeout=5)

    assert page.total_count == 2
    assert [archive.id for archive in page] == [ARCHIVE_JSON["id"], "second"]
    assert len(by_session) == 1
    assert http.calls[0]["params"] == {"offset": 5, "count": 2}
    assert http.calls[1]["params"] == {"sessionId": "1_MX40MDAwMH5-"}


def test_list_archives_validates_paging(make_client) -> None:
    client, http = make_client()

    with pytest.raises(InvalidArgumentError):
        client.list_archives(count=1001).result(timeout=5)
    assert http.calls == []


@pytest.mark.parametrize(
    ("response", "status"),
    [
        (StubResponse(status_code=403, body={"message": "Forbidden"}), 403),
        (StubResponse(status_code=404, body={"message": "not found"}), 404),
        (StubResponse(status_code=500, text="boom"), 500),
        (StubResponse(status_code=200, text="not json"), 200),
        (requests.ConnectionError("refused"), None),
    ],
)
def test_failures_surface_as_request_errors(make_client, response, status) -> None:
    client, _ = make_client(response)

    with pytest.raises(RequestError) as excinfo:
        client.get_archive("missing").result(timeout=5)

    assert excinfo.value.status_code == status
    assert excinfo.value.kind is ErrorKind.REMOTE_REQUEST_FAILURE


def test_close_releases_http_session() -> None:
    http = StubHTTPSession()
    gateway = SessionServiceGateway(_config(), session=http)  # type: ignore[arg-type]

    gateway.close()

    assert http.closed is True
