"""Shared configuration loader for rtc_tokens."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .errors import ConfigurationError
from .model import AccountCredential

DEFAULT_API_URL = "https://api.opentok.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CONFIG_PATH = Path.home() / ".rtc_tokens.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass(frozen=True)
class ClientConfig:
    """Credential plus the endpoint used to reach the session service."""

    account_key: int
    account_secret: str | bytes = field(repr=False)
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def credential(self) -> AccountCredential:
        return AccountCredential.create(self.account_key, self.account_secret)


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with an 'account' section")
    return loaded


def _coerce_key(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid account key in {source}: {raw}") from exc


def _coerce_timeout(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid timeout in {source}: {raw}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"Timeout in {source} must be positive: {raw}")
    return timeout


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _env_value(env_map: Mapping[str, str], name: str) -> str | None:
    return env_map.get(f"RTC_{name}") or env_map.get(f"RTC_TOKENS_{name}")


def _validate_api_url(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid API URL: {raw}")
    return raw.rstrip("/")


def load_credentials(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ClientConfig:
    """Load client configuration from overrides, environment and optional YAML.

    Precedence is overrides, then ``RTC_*`` environment variables, then the
    ``account`` section of the YAML file.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    section = file_config.get("account", {})
    if section and not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'account' to be a mapping in {path}")
    section = section or {}

    override_map = dict(overrides or {})

    resolved_key = _first_value(
        _coerce_key(override_map.get("api_key"), source="overrides"),
        _coerce_key(_env_value(env_map, "API_KEY"), source="environment"),
        _coerce_key(section.get("api_key"), source=f"{path} account.api_key"),
    )
    resolved_secret = _first_value(
        override_map.get("api_secret"),
        _env_value(env_map, "API_SECRET"),
        section.get("api_secret"),
    )
    if resolved_key is None or not resolved_secret or not str(resolved_secret).strip():
        raise ConfigurationError(
            "Account credentials must be provided via RTC_API_KEY/RTC_API_SECRET or a config file"
        )

    resolved_url = _first_value(
        override_map.get("api_url"),
        _env_value(env_map, "API_URL"),
        section.get("api_url"),
        DEFAULT_API_URL,
    )
    resolved_timeout = _first_value(
        _coerce_timeout(override_map.get("timeout"), source="overrides"),
        _coerce_timeout(_env_value(env_map, "TIMEOUT"), source="environment"),
        _coerce_timeout(section.get("timeout"), source=f"{path} account.timeout"),
        DEFAULT_TIMEOUT_SECONDS,
    )

    return ClientConfig(
        account_key=resolved_key,
        account_secret=str(resolved_secret).strip(),
        api_url=_validate_api_url(str(resolved_url)),
        timeout=resolved_timeout,
    )
