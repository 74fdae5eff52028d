"""Data model for the rtc_tokens SDK.

Option objects are plain frozen dataclasses. They perform no validation when
constructed; values are checked (and defaults resolved) by the component that
consumes them, see :mod:`rtc_tokens.payload`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

ExpireTime = Union[datetime, int, float]


class Role(str, Enum):
    """Permission level granted by a token."""

    SUBSCRIBER = "subscriber"
    PUBLISHER = "publisher"
    MODERATOR = "moderator"


class MediaMode(str, Enum):
    """Whether session streams are relayed peer-to-peer or routed."""

    RELAYED = "relayed"
    ROUTED = "routed"


class ArchiveMode(str, Enum):
    """Whether archiving starts automatically when a session begins."""

    MANUAL = "manual"
    ALWAYS = "always"


class OutputMode(str, Enum):
    """Whether streams are composed into one file or recorded individually."""

    COMPOSED = "composed"
    INDIVIDUAL = "individual"


@dataclass(frozen=True)
class AccountCredential:
    """Account key and HMAC secret shared by every signing operation."""

    account_key: int
    account_secret: bytes = field(repr=False)

    @classmethod
    def create(cls, account_key: int | str, account_secret: str | bytes) -> "AccountCredential":
        """Normalize raw configuration values into a credential.

        The secret is stripped of surrounding whitespace exactly once, here.
        """

        if isinstance(account_secret, str):
            account_secret = account_secret.encode("utf-8")
        return cls(account_key=int(account_key), account_secret=account_secret.strip())


@dataclass(frozen=True)
class SessionIdentifier:
    """Decoded contents of a session id issued by the service.

    ``created_at`` and ``nonce`` hold the text the service wrote verbatim.
    An empty ``location_hint`` is stored as ``None``.
    """

    account_key: int
    created_at: str
    nonce: str
    format_version: int = 1
    location_hint: Optional[str] = None

    def __post_init__(self) -> None:
        if self.location_hint == "":
            object.__setattr__(self, "location_hint", None)


@dataclass(frozen=True)
class TokenOptions:
    """Caller options for :meth:`rtc_tokens.client.SessionClient.generate_token`."""

    role: Union[Role, str, None] = None
    expire_time: Optional[ExpireTime] = None
    data: Optional[str] = None
    initial_layout_class_list: Sequence[str] = ()


@dataclass(frozen=True)
class TokenPayload:
    """Validated, fully populated token contents ready for signing."""

    account_key: int
    session_id: str
    create_time: int
    expire_time: int
    role: Role
    nonce: str
    connection_data: str = ""
    initial_layout_class_list: tuple[str, ...] = ()
    signature_version: int = 1

    def to_fields(self) -> list[tuple[str, str]]:
        """Return the payload as ordered wire fields.

        The order is part of the wire contract for signature version 1.
        """

        fields = [
            ("partner_id", str(self.account_key)),
            ("session_id", self.session_id),
            ("create_time", str(self.create_time)),
            ("expire_time", str(self.expire_time)),
            ("role", self.role.value),
            ("nonce", self.nonce),
        ]
        if self.connection_data:
            fields.append(("connection_data", self.connection_data))
        if self.initial_layout_class_list:
            fields.append(
                ("initial_layout_class_list", " ".join(self.initial_layout_class_list))
            )
        return fields


@dataclass(frozen=True)
class SessionProperties:
    """Options for creating a session."""

    media_mode: MediaMode = MediaMode.RELAYED
    archive_mode: ArchiveMode = ArchiveMode.MANUAL
    location: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params = {
            "p2p.preference": "enabled" if self.media_mode is MediaMode.RELAYED else "disabled",
            "archiveMode": self.archive_mode.value,
        }
        if self.location:
            params["location"] = self.location
        return params


@dataclass(frozen=True)
class ArchiveProperties:
    """Options for starting an archive."""

    name: Optional[str] = None
    has_audio: bool = True
    has_video: bool = True
    output_mode: OutputMode = OutputMode.COMPOSED

    def to_json(self, session_id: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "sessionId": session_id,
            "hasAudio": self.has_audio,
            "hasVideo": self.has_video,
            "outputMode": self.output_mode.value,
        }
        if self.name is not None:
            body["name"] = self.name
        return body


@dataclass(frozen=True)
class ArchiveDescriptor:
    """Minimal view of an archive returned by the service.

    Only the identifying fields are lifted out; ``raw`` keeps the full JSON
    object for callers that need anything else.
    """

    id: str
    session_id: str
    status: str
    name: Optional[str] = None
    created_at: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ArchiveDescriptor":
        return cls(
            id=str(data.get("id", "")),
            session_id=str(data.get("sessionId", "")),
            status=str(data.get("status", "unknown")),
            name=data.get("name"),
            created_at=data.get("createdAt"),
            raw=dict(data),
        )


@dataclass(frozen=True)
class ArchiveList:
    total_count: int
    items: tuple[ArchiveDescriptor, ...]

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ArchiveList":
        items = tuple(ArchiveDescriptor.from_json(item) for item in data.get("items", []))
        return cls(total_count=int(data.get("count", len(items))), items=items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
