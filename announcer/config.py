"""Bot configuration and secret loading.

A configuration file is JSON of the form::

    {
      "secretProvider": {"ProviderType": "RawFile", "ProviderLocation": "secrets.json"},
      "region": "na1",
      "pollInterval": 10,
      "requestTimeout": 5,
      "stateFile": "botdata.json"
    }

Secrets (the Riot API key and Discord bot token) come from the provider named
in ``secretProvider``. Without a config file they are read from the
``RIOT_APIKEY`` and ``DISCORD_AUTH`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from announcer.storage import DEFAULT_STATE_FILE
from announcer.worker import POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

RAW_FILE_PROVIDER = "RawFile"
SECRET_PROVIDERS = (RAW_FILE_PROVIDER,)


class ConfigError(Exception):
    """The configuration or its secrets are missing or invalid."""


@dataclass(frozen=True)
class SecretProvider:
    kind: str
    location: str
    additional: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "SecretProvider":
        kind = d.get("ProviderType", "")
        if kind not in SECRET_PROVIDERS:
            raise ConfigError(f"unknown secrets provider: {kind}")
        return cls(
            kind=kind,
            location=d.get("ProviderLocation", ""),
            additional=d.get("ProviderAdditional", ""),
        )


@dataclass(frozen=True)
class BotSecrets:
    riot_api_key: str
    discord_auth_token: str


@dataclass
class BotConfig:
    riot_api_key: str
    discord_auth_token: str
    region: str = "na1"
    poll_interval: float = POLL_INTERVAL_SECONDS
    request_timeout: float = 5.0
    state_file: Path = DEFAULT_STATE_FILE

    def validate(self) -> None:
        if not self.riot_api_key:
            raise ConfigError("no Riot API key")
        if not self.discord_auth_token:
            raise ConfigError("no Discord auth token")
        if self.poll_interval <= 0:
            raise ConfigError("poll interval must be positive")


def _read_json(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_secrets(provider: SecretProvider) -> BotSecrets:
    match provider.kind:
        case "RawFile":
            logger.debug("Loading secrets from raw file %s", provider.location)
            raw = _read_json(Path(provider.location))
        case _:
            raise ConfigError(f"unknown secrets provider: {provider.kind}")
    return BotSecrets(
        riot_api_key=raw.get("RiotApiKey", ""),
        discord_auth_token=raw.get("DiscordAuthToken", ""),
    )


def load_config(path) -> BotConfig:
    data = _read_json(Path(path))
    if "secretProvider" not in data:
        raise ConfigError(f"{path} has no secretProvider block")
    secrets = load_secrets(SecretProvider.from_dict(data["secretProvider"]))
    config = BotConfig(
        riot_api_key=secrets.riot_api_key,
        discord_auth_token=secrets.discord_auth_token,
        region=data.get("region", "na1"),
        poll_interval=float(data.get("pollInterval", POLL_INTERVAL_SECONDS)),
        request_timeout=float(data.get("requestTimeout", 5.0)),
        state_file=Path(data.get("stateFile", DEFAULT_STATE_FILE)),
    )
    config.validate()
    return config


def config_from_env() -> BotConfig:
    config = BotConfig(
        riot_api_key=os.environ.get("RIOT_APIKEY", ""),
        discord_auth_token=os.environ.get("DISCORD_AUTH", ""),
    )
    config.validate()
    return config
