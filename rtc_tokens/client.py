"""Entry point combining token generation with session service calls.

Token generation is synchronous and performs no I/O::

    client = SessionClient(40000, "abc123")
    token = client.generate_token(session_id, TokenOptions(role=Role.SUBSCRIBER))

Session and archive operations go through the
:class:`~rtc_tokens.gateway.SessionServiceGateway` and return
:class:`concurrent.futures.Future` objects.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from .config import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS, ClientConfig, load_credentials
from .errors import InvalidSessionIdError
from .gateway import SessionServiceGateway, failed_future
from .model import (
    AccountCredential,
    ArchiveDescriptor,
    ArchiveList,
    ArchiveProperties,
    SessionProperties,
    TokenOptions,
)
from .payload import TokenPayloadBuilder
from .signer import sign_payload, verify_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """A session created through :meth:`SessionClient.create_session`."""

    session_id: str
    properties: SessionProperties
    client: "SessionClient" = field(repr=False, compare=False)

    def generate_token(self, options: TokenOptions | None = None) -> str:
        return self.client.generate_token(self.session_id, options)


class SessionClient:
    """Generate tokens and manage sessions and archives for one account."""

    def __init__(
        self,
        account_key: int,
        account_secret: str | bytes,
        *,
        api_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        gateway: SessionServiceGateway | None = None,
        builder: TokenPayloadBuilder | None = None,
    ) -> None:
        self._credential = AccountCredential.create(account_key, account_secret)
        self._builder = builder or TokenPayloadBuilder(self._credential)
        if gateway is None:
            gateway = SessionServiceGateway(
                ClientConfig(
                    account_key=self._credential.account_key,
                    account_secret=self._credential.account_secret,
                    api_url=(api_url or DEFAULT_API_URL).rstrip("/"),
                    timeout=timeout,
                )
            )
        self._gateway = gateway

    @classmethod
    def from_config(
        cls,
        *,
        config_path: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "SessionClient":
        """Instantiate a client using environment variables or config file."""

        config = load_credentials(config_path=config_path, env=env, overrides=overrides)
        return cls(
            config.account_key,
            config.account_secret,
            gateway=SessionServiceGateway(config),
        )

    @property
    def account_key(self) -> int:
        return self._credential.account_key

    def generate_token(self, session_id: str, options: TokenOptions | None = None) -> str:
        """Create a signed token for a user joining ``session_id``.

        With no options the token has the publisher role, expires 24 hours
        after creation and carries no connection data. Raises a subclass of
        :class:`~rtc_tokens.errors.InvalidArgumentError` when the session id
        or an option is invalid, and :class:`~rtc_tokens.errors.SigningError`
        when the account secret cannot be used.
        """

        payload = self._builder.build(session_id, options)
        token = sign_payload(payload, self._credential.account_secret)
        logger.debug("Generated %s token", payload.role.value)
        return token

    def verify_token(self, token: str) -> dict[str, str]:
        """Return the payload of a token minted for this account.

        Raises :class:`~rtc_tokens.errors.SigningError` when the signature does
        not match the account secret.
        """

        return verify_token(token, self._credential.account_secret)

    def create_session(self, properties: SessionProperties | None = None) -> "Future[Session]":
        """Create a new session; the future resolves to a :class:`Session`."""

        resolved = properties or SessionProperties()
        result: Future[Session] = Future()

        def _done(inner: "Future[str]") -> None:
            if inner.cancelled():
                result.cancel()
                return
            exc = inner.exception()
            if exc is not None:
                result.set_exception(exc)
                return
            session_id = inner.result()
            logger.info("Created session for account %d", self.account_key)
            result.set_result(Session(session_id=session_id, properties=resolved, client=self))

        self._gateway.create_session(resolved.to_params()).add_done_callback(_done)
        return result

    def get_archive(self, archive_id: str) -> "Future[ArchiveDescriptor]":
        return self._gateway.get_archive(archive_id)

    def list_archives(
        self,
        offset: int = 0,
        count: int = 1000,
        *,
        session_id: Optional[str] = None,
    ) -> "Future[ArchiveList]":
        """List archives, newest first, optionally restricted to one session."""

        return self._gateway.list_archives(offset=offset, count=count, session_id=session_id)

    def start_archive(
        self, session_id: str, properties: ArchiveProperties | None = None
    ) -> "Future[ArchiveDescriptor]":
        if not session_id:
            return failed_future(InvalidSessionIdError("Session not valid"))
        logger.info("Starting archive")
        return self._gateway.start_archive(session_id, properties)

    def stop_archive(self, archive_id: str) -> "Future[ArchiveDescriptor]":
        return self._gateway.stop_archive(archive_id)

    def delete_archive(self, archive_id: str) -> "Future[None]":
        return self._gateway.delete_archive(archive_id)

    def close(self) -> None:
        self._gateway.close()

    def __enter__(self) -> "SessionClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
