"""Token payload assembly and validation."""

from __future__ import annotations

import logging
import math
import os
import time
from datetime import datetime, timedelta
from typing import Callable, Sequence

from .errors import (
    AccountMismatchError,
    InvalidArgumentError,
    InvalidExpirationError,
    InvalidRoleError,
    InvalidSessionIdError,
    PayloadTooLargeError,
)
from .model import AccountCredential, ExpireTime, Role, TokenOptions, TokenPayload
from .session_id import decode_session_id

logger = logging.getLogger(__name__)

# Limits enforced by the service; override per builder if the service changes them.
MAX_EXPIRE_HORIZON = timedelta(days=30)
DEFAULT_TOKEN_TTL = timedelta(hours=24)
MAX_CONNECTION_DATA_BYTES = 1000
NONCE_BYTES = 16
SIGNATURE_VERSION = 1


def generate_nonce(size: int = NONCE_BYTES) -> str:
    """Return ``size`` bytes from the OS entropy source as lowercase hex."""

    return os.urandom(size).hex()


def _coerce_role(role: Role | str | None) -> Role:
    if role is None:
        return Role.PUBLISHER
    if isinstance(role, Role):
        return role
    if isinstance(role, str):
        try:
            return Role(role.strip().lower())
        except ValueError:
            pass
    raise InvalidRoleError(
        f"Invalid role {role!r}; expected one of {', '.join(r.value for r in Role)}"
    )


def _coerce_timestamp(value: ExpireTime) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidExpirationError(f"Expiration must be a datetime or epoch seconds, got {value!r}")
    if not math.isfinite(value):
        raise InvalidExpirationError(f"Expiration must be a finite number, got {value!r}")
    return float(value)


def _coerce_layout_classes(classes: Sequence[str] | None) -> tuple[str, ...]:
    if not classes:
        return ()
    if isinstance(classes, str):
        raise InvalidArgumentError("initial_layout_class_list must be a sequence of class names")
    normalized = []
    for entry in classes:
        if not isinstance(entry, str) or not entry or any(ch.isspace() for ch in entry):
            raise InvalidArgumentError(f"Invalid layout class name: {entry!r}")
        normalized.append(entry)
    return tuple(normalized)


class TokenPayloadBuilder:
    """Turn a session id and :class:`TokenOptions` into a :class:`TokenPayload`.

    The builder holds no mutable state and can be shared across threads.
    """

    def __init__(
        self,
        credential: AccountCredential,
        *,
        clock: Callable[[], float] = time.time,
        max_expire_horizon: timedelta = MAX_EXPIRE_HORIZON,
        default_ttl: timedelta = DEFAULT_TOKEN_TTL,
        max_data_bytes: int = MAX_CONNECTION_DATA_BYTES,
    ) -> None:
        self.credential = credential
        self.clock = clock
        self.max_expire_horizon = max_expire_horizon
        self.default_ttl = default_ttl
        self.max_data_bytes = max_data_bytes

    def build(self, session_id: str, options: TokenOptions | None = None) -> TokenPayload:
        if not session_id:
            raise InvalidSessionIdError("Session id must be a non-empty string")
        options = options or TokenOptions()

        identifier = decode_session_id(session_id)
        if identifier.account_key != self.credential.account_key:
            raise AccountMismatchError(self.credential.account_key, identifier.account_key)

        role = _coerce_role(options.role)
        now = int(self.clock())
        expire_time = self._resolve_expiration(options.expire_time, now)
        connection_data = self._resolve_connection_data(options.data)
        layout_classes = _coerce_layout_classes(options.initial_layout_class_list)

        payload = TokenPayload(
            account_key=self.credential.account_key,
            session_id=session_id,
            create_time=now,
            expire_time=expire_time,
            role=role,
            nonce=generate_nonce(),
            connection_data=connection_data,
            initial_layout_class_list=layout_classes,
            signature_version=SIGNATURE_VERSION,
        )
        logger.debug(
            "Built token payload role=%s expire_time=%d data_bytes=%d",
            role.value,
            expire_time,
            len(connection_data.encode("utf-8")),
        )
        return payload

    def _resolve_expiration(self, expire_time: ExpireTime | None, now: int) -> int:
        if expire_time is None:
            return now + int(self.default_ttl.total_seconds())
        expires = _coerce_timestamp(expire_time)
        if expires <= now:
            raise InvalidExpirationError(
                f"Expiration {expires} is not in the future (now is {now})"
            )
        horizon = now + int(self.max_expire_horizon.total_seconds())
        if expires > horizon:
            raise InvalidExpirationError(
                f"Expiration {expires} exceeds maximum horizon of "
                f"{self.max_expire_horizon.days} days ({horizon})"
            )
        # whole seconds on the wire; ceil keeps the result inside (now, horizon]
        return math.ceil(expires)

    def _resolve_connection_data(self, data: str | None) -> str:
        if data is None:
            return ""
        if not isinstance(data, str):
            raise InvalidArgumentError("Connection data must be a string")
        size = len(data.encode("utf-8"))
        if size > self.max_data_bytes:
            raise PayloadTooLargeError(size, self.max_data_bytes)
        return data
