"""Server-side SDK for hosted real-time communication sessions."""

from .canonical import CanonicalEncoder
from .client import Session, SessionClient
from .config import ClientConfig, load_credentials
from .errors import (
    AccountMismatchError,
    ConfigurationError,
    ErrorKind,
    InvalidArgumentError,
    InvalidExpirationError,
    InvalidRoleError,
    InvalidSessionIdError,
    MalformedEncodingError,
    PayloadTooLargeError,
    RequestError,
    SDKError,
    SigningError,
)
from .gateway import SessionServiceGateway
from .model import (
    AccountCredential,
    ArchiveDescriptor,
    ArchiveList,
    ArchiveMode,
    ArchiveProperties,
    MediaMode,
    OutputMode,
    Role,
    SessionIdentifier,
    SessionProperties,
    TokenOptions,
    TokenPayload,
)
from .payload import TokenPayloadBuilder
from .session_id import decode_session_id, encode_session_id
from .signer import decode_token, verify_token

__all__ = [
    "AccountCredential",
    "AccountMismatchError",
    "ArchiveDescriptor",
    "ArchiveList",
    "ArchiveMode",
    "ArchiveProperties",
    "CanonicalEncoder",
    "ClientConfig",
    "ConfigurationError",
    "ErrorKind",
    "InvalidArgumentError",
    "InvalidExpirationError",
    "InvalidRoleError",
    "InvalidSessionIdError",
    "MalformedEncodingError",
    "MediaMode",
    "OutputMode",
    "PayloadTooLargeError",
    "RequestError",
    "Role",
    "SDKError",
    "Session",
    "SessionClient",
    "SessionIdentifier",
    "SessionProperties",
    "SessionServiceGateway",
    "SigningError",
    "TokenOptions",
    "TokenPayload",
    "TokenPayloadBuilder",
    "decode_session_id",
    "decode_token",
    "encode_session_id",
    "load_credentials",
    "verify_token",
]
