"""Exception types raised by the rtc_tokens SDK.

Every error carries an :class:`ErrorKind` so callers that prefer to branch on
the category of failure can do so without enumerating concrete classes::

    try:
        token = client.generate_token(session_id)
    except SDKError as exc:
        if exc.kind is ErrorKind.INVALID_ARGUMENT:
            ...
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Coarse classification shared by all SDK errors."""

    INVALID_ARGUMENT = "invalid_argument"
    MALFORMED_ENCODING = "malformed_encoding"
    SIGNING_FAILURE = "signing_failure"
    REMOTE_REQUEST_FAILURE = "remote_request_failure"


class SDKError(RuntimeError):
    """Base class for every error surfaced by the SDK."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT


class InvalidArgumentError(SDKError, ValueError):
    """Raised when a caller-supplied value violates a precondition."""

    kind = ErrorKind.INVALID_ARGUMENT


class InvalidSessionIdError(InvalidArgumentError):
    """Raised when a session identifier is empty or cannot be decoded."""


class AccountMismatchError(InvalidArgumentError):
    """Raised when a session identifier belongs to a different account."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"session id does not match account key (expected {expected}, found {actual})"
        )
        self.expected = expected
        self.actual = actual


class InvalidRoleError(InvalidArgumentError):
    """Raised when a token role is not one of the supported roles."""


class InvalidExpirationError(InvalidArgumentError):
    """Raised when a token expiration is in the past or beyond the horizon."""


class PayloadTooLargeError(InvalidArgumentError):
    """Raised when connection data exceeds the allowed size."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"connection data is {size} bytes; the maximum is {limit} bytes"
        )
        self.size = size
        self.limit = limit


class MalformedEncodingError(SDKError, ValueError):
    """Raised when an identifier or token does not follow the wire format."""

    kind = ErrorKind.MALFORMED_ENCODING


class SigningError(SDKError):
    """Raised when a signature cannot be computed or does not verify."""

    kind = ErrorKind.SIGNING_FAILURE


class RequestError(SDKError):
    """Raised when the session service is unreachable or rejects a request."""

    kind = ErrorKind.REMOTE_REQUEST_FAILURE

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(SDKError):
    """Raised when configuration is invalid."""

    kind = ErrorKind.INVALID_ARGUMENT
