"""Command-line interface for rtc_tokens.

The CLI is a thin façade over :class:`rtc_tokens.client.SessionClient` so that
operators can mint tokens, inspect identifiers and manage archives without
writing Python. Credentials come from ``--api-key``/``--api-secret``, the
``RTC_*`` environment variables or ``~/.rtc_tokens.yaml``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from typing import Any, Sequence

from .client import SessionClient
from .config import set_default_config_path
from .errors import SDKError
from .model import (
    ArchiveDescriptor,
    ArchiveMode,
    ArchiveProperties,
    MediaMode,
    OutputMode,
    Role,
    SessionProperties,
    TokenOptions,
)
from .session_id import decode_session_id
from .signer import decode_token

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="rtc_tokens session SDK CLI")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--api-key", default=None, help="Account key (overrides config)")
    parser.add_argument("--api-secret", default=None, help="Account secret (overrides config)")
    parser.add_argument("--api-url", default=None, help="Session service base URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    token_parser = subparsers.add_parser("generate-token", help="mint a token for a session")
    token_parser.add_argument("--session-id", required=True, help="Session to join")
    token_parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.PUBLISHER.value,
        help="Role granted by the token (default: publisher)",
    )
    token_parser.add_argument(
        "--expire-in",
        type=int,
        default=None,
        help="Seconds until the token expires (default: 86400)",
    )
    token_parser.add_argument("--data", default=None, help="Connection data for the client")
    token_parser.add_argument(
        "--layout-class",
        action="append",
        default=[],
        help="Initial layout class; repeat for several",
    )

    decode_sid_parser = subparsers.add_parser(
        "decode-session-id", help="print the fields encoded in a session id"
    )
    decode_sid_parser.add_argument("session_id")

    decode_token_parser = subparsers.add_parser(
        "decode-token", help="print the payload of a token"
    )
    decode_token_parser.add_argument("token")
    decode_token_parser.add_argument(
        "--verify",
        action="store_true",
        help="Check the signature against the configured account secret",
    )

    create_parser = subparsers.add_parser("create-session", help="create a new session")
    create_parser.add_argument(
        "--media-mode", choices=[m.value for m in MediaMode], default=MediaMode.RELAYED.value
    )
    create_parser.add_argument(
        "--archive-mode", choices=[m.value for m in ArchiveMode], default=ArchiveMode.MANUAL.value
    )
    create_parser.add_argument("--location", default=None, help="IP address location hint")

    get_parser = subparsers.add_parser("archive-get", help="show one archive")
    get_parser.add_argument("archive_id")

    list_parser = subparsers.add_parser("archive-list", help="list archives")
    list_parser.add_argument("--offset", type=int, default=0)
    list_parser.add_argument("--count", type=int, default=1000)
    list_parser.add_argument("--session-id", default=None)

    start_parser = subparsers.add_parser("archive-start", help="start recording a session")
    start_parser.add_argument("--session-id", required=True)
    start_parser.add_argument("--name", default=None)
    start_parser.add_argument("--no-audio", action="store_true")
    start_parser.add_argument("--no-video", action="store_true")
    start_parser.add_argument(
        "--output-mode", choices=[m.value for m in OutputMode], default=OutputMode.COMPOSED.value
    )

    stop_parser = subparsers.add_parser("archive-stop", help="stop a recording")
    stop_parser.add_argument("archive_id")

    delete_parser = subparsers.add_parser("archive-delete", help="delete an archive")
    delete_parser.add_argument("archive_id")

    return parser


def _client_from_args(args: argparse.Namespace) -> SessionClient:
    if args.config:
        set_default_config_path(args.config)
    overrides = {
        "api_key": args.api_key,
        "api_secret": args.api_secret,
        "api_url": args.api_url,
    }
    return SessionClient.from_config(
        overrides={key: value for key, value in overrides.items() if value is not None}
    )


def _archive_json(archive: ArchiveDescriptor) -> dict[str, Any]:
    return {
        "id": archive.id,
        "session_id": archive.session_id,
        "status": archive.status,
        "name": archive.name,
        "created_at": archive.created_at,
    }


def cmd_generate_token(args: argparse.Namespace) -> None:
    if args.expire_in is not None and args.expire_in <= 0:
        raise CLIError("--expire-in must be positive")
    expire_time = int(time.time()) + args.expire_in if args.expire_in is not None else None
    options = TokenOptions(
        role=Role(args.role),
        expire_time=expire_time,
        data=args.data,
        initial_layout_class_list=tuple(args.layout_class),
    )
    with _client_from_args(args) as client:
        print(client.generate_token(args.session_id, options))


def cmd_decode_session_id(args: argparse.Namespace) -> None:
    identifier = decode_session_id(args.session_id)
    print(json.dumps(asdict(identifier), indent=2))


def cmd_decode_token(args: argparse.Namespace) -> None:
    if args.verify:
        with _client_from_args(args) as client:
            fields = client.verify_token(args.token)
    else:
        fields = decode_token(args.token)
    print(json.dumps(fields, indent=2))


def cmd_create_session(args: argparse.Namespace) -> None:
    properties = SessionProperties(
        media_mode=MediaMode(args.media_mode),
        archive_mode=ArchiveMode(args.archive_mode),
        location=args.location,
    )
    with _client_from_args(args) as client:
        session = client.create_session(properties).result()
    print(session.session_id)


def cmd_archive(args: argparse.Namespace) -> None:
    with _client_from_args(args) as client:
        if args.command == "archive-get":
            print(json.dumps(_archive_json(client.get_archive(args.archive_id).result()), indent=2))
        elif args.command == "archive-list":
            archives = client.list_archives(
                args.offset, args.count, session_id=args.session_id
            ).result()
            print(
                json.dumps(
                    {
                        "count": archives.total_count,
                        "items": [_archive_json(item) for item in archives],
                    },
                    indent=2,
                )
            )
        elif args.command == "archive-start":
            properties = ArchiveProperties(
                name=args.name,
                has_audio=not args.no_audio,
                has_video=not args.no_video,
                output_mode=OutputMode(args.output_mode),
            )
            archive = client.start_archive(args.session_id, properties).result()
            print(json.dumps(_archive_json(archive), indent=2))
        elif args.command == "archive-stop":
            print(json.dumps(_archive_json(client.stop_archive(args.archive_id).result()), indent=2))
        elif args.command == "archive-delete":
            client.delete_archive(args.archive_id).result()
            logger.info("Deleted archive %s", args.archive_id)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "generate-token":
            cmd_generate_token(args)
        elif args.command == "decode-session-id":
            cmd_decode_session_id(args)
        elif args.command == "decode-token":
            cmd_decode_token(args)
        elif args.command == "create-session":
            cmd_create_session(args)
        elif args.command.startswith("archive-"):
            cmd_archive(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (CLIError, SDKError) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
