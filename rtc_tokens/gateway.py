"""HTTP gateway to the session service REST API.

The gateway is intentionally thin: each helper maps directly to one REST call
and returns a small descriptor built from the JSON response. Calls run on a
worker pool and hand back :class:`concurrent.futures.Future` objects so the
caller is never blocked while a request is in flight. Requests are not
retried; failures surface as :class:`rtc_tokens.errors.RequestError`.
"""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

import jwt
import requests
from requests import RequestException, Response

from .config import ClientConfig
from .errors import InvalidArgumentError, RequestError
from .model import ArchiveDescriptor, ArchiveList, ArchiveProperties

logger = logging.getLogger(__name__)

T = TypeVar("T")

AUTH_HEADER = "X-OPENTOK-AUTH"
AUTH_TOKEN_TTL_SECONDS = 180
MAX_ARCHIVE_PAGE = 1000
DEFAULT_MAX_WORKERS = 4


class SessionServiceGateway:
    """REST client for session creation and archive management."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        session: requests.Session | None = None,
        executor: ThreadPoolExecutor | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="rtc-gateway"
        )
        self._base_url = config.api_url.rstrip("/")

    # Plumbing -------------------------------------------------------------

    def _auth_token(self) -> str:
        issued_at = int(time.time())
        claims = {
            "iss": str(self.config.account_key),
            "ist": "project",
            "iat": issued_at,
            "exp": issued_at + AUTH_TOKEN_TTL_SECONDS,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, self.config.account_secret, algorithm="HS256")

    def _headers(self) -> Dict[str, str]:
        return {
            AUTH_HEADER: self._auth_token(),
            "Accept": "application/json",
            "User-Agent": "rtc-tokens-python",
        }

    @property
    def _archive_url(self) -> str:
        return f"{self._base_url}/v2/project/{self.config.account_key}/archive"

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
        expect_json: bool = True,
    ) -> Any:
        """Perform one blocking HTTP request and return the parsed JSON body."""

        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                data=data,
                json=json_body,
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except RequestException as exc:
            logger.error(
                "Request to session service failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RequestError(
                "Could not reach the session service. Check RTC_API_URL and network access."
            ) from exc
        self._raise_for_status(response)
        if not expect_json:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("Malformed JSON from session service: %s", response.text, exc_info=True)
            raise RequestError(
                "Session service returned malformed JSON", status_code=response.status_code
            ) from exc

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        try:
            err_body = response.json()
        except ValueError:
            err_body = response.text
        logger.error("HTTP error %s from %s", response.status_code, response.url)
        logger.error("Error body: %s", err_body)
        if response.status_code in {401, 403}:
            raise RequestError(
                f"Unauthorized ({response.status_code}). Check the account key and secret.",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise RequestError("Resource not found", status_code=response.status_code)
        raise RequestError(
            f"Session service returned HTTP {response.status_code}: {err_body}",
            status_code=response.status_code,
        )

    def submit(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Run ``func`` on the gateway worker pool."""

        return self._executor.submit(func, *args, **kwargs)

    def close(self) -> None:
        """Release the HTTP session and worker pool."""

        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._session.close()

    # Blocking operations ---------------------------------------------------

    def create_session_sync(self, params: Mapping[str, str]) -> str:
        result = self.request("POST", f"{self._base_url}/session/create", data=dict(params))
        if not isinstance(result, list) or len(result) != 1:
            count = len(result) if isinstance(result, list) else 0
            raise RequestError(f"Unexpected number of sessions created {count}")
        session_id = result[0].get("session_id") if isinstance(result[0], dict) else None
        if not session_id:
            raise RequestError(f"Cannot create session. Could not read the response: {result}")
        return str(session_id)

    def get_archive_sync(self, archive_id: str) -> ArchiveDescriptor:
        return _archive(self.request("GET", f"{self._archive_url}/{archive_id}"))

    def list_archives_sync(
        self,
        *,
        offset: int = 0,
        count: int = MAX_ARCHIVE_PAGE,
        session_id: str | None = None,
    ) -> ArchiveList:
        if offset < 0 or not 0 < count <= MAX_ARCHIVE_PAGE:
            raise InvalidArgumentError(
                f"offset must be >= 0 and count between 1 and {MAX_ARCHIVE_PAGE}"
            )
        params: Dict[str, Any] = {"offset": offset, "count": count}
        if session_id:
            params = {"sessionId": session_id}
        result = self.request("GET", self._archive_url, params=params)
        try:
            return ArchiveList.from_json(result)
        except (AttributeError, TypeError, ValueError) as exc:
            raise RequestError(f"Exception mapping json: {exc}") from exc

    def start_archive_sync(
        self, session_id: str, properties: ArchiveProperties | None = None
    ) -> ArchiveDescriptor:
        body = (properties or ArchiveProperties()).to_json(session_id)
        return _archive(self.request("POST", self._archive_url, json_body=body))

    def stop_archive_sync(self, archive_id: str) -> ArchiveDescriptor:
        return _archive(self.request("POST", f"{self._archive_url}/{archive_id}/stop"))

    def delete_archive_sync(self, archive_id: str) -> None:
        self.request("DELETE", f"{self._archive_url}/{archive_id}", expect_json=False)

    # Non-blocking wrappers -------------------------------------------------

    def create_session(self, params: Mapping[str, str]) -> "Future[str]":
        return self.submit(self.create_session_sync, params)

    def get_archive(self, archive_id: str) -> "Future[ArchiveDescriptor]":
        return self.submit(self.get_archive_sync, archive_id)

    def list_archives(self, **kwargs: Any) -> "Future[ArchiveList]":
        return self.submit(self.list_archives_sync, **kwargs)

    def start_archive(
        self, session_id: str, properties: ArchiveProperties | None = None
    ) -> "Future[ArchiveDescriptor]":
        return self.submit(self.start_archive_sync, session_id, properties)

    def stop_archive(self, archive_id: str) -> "Future[ArchiveDescriptor]":
        return self.submit(self.stop_archive_sync, archive_id)

    def delete_archive(self, archive_id: str) -> "Future[None]":
        return self.submit(self.delete_archive_sync, archive_id)


def _archive(result: Any) -> ArchiveDescriptor:
    if not isinstance(result, dict):
        raise RequestError(f"Exception mapping json: expected an object, got {type(result).__name__}")
    return ArchiveDescriptor.from_json(result)


def failed_future(exc: BaseException) -> "Future[Any]":
    """Return a future that has already failed with ``exc``."""

    future: Future[Any] = Future()
    future.set_exception(exc)
    return future
