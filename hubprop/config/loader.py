from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/hubprop.yml``)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults for every optional key
- Resolve the HubSpot API key from the environment (HUBSPOT_API_KEY),
  never from the YAML file
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/hubprop.yml")

API_KEY_ENV = "HUBSPOT_API_KEY"
DEFAULT_BASE_URL = "https://api.hubapi.com"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class HubSpotConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float | None = None  # None: httpx の既定値


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(frozen=True)
class Settings:
    hubspot: HubSpotConfig = field(default_factory=HubSpotConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    exclude_default_properties: bool = True
    api_key: str | None = None

    def with_api_key(self, api_key: str | None) -> Settings:
        return replace(self, api_key=api_key)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def api_key_from_env() -> str | None:
    return os.getenv(API_KEY_ENV) or None


def load_config(path: Path) -> Settings:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    hs_raw = data.get("hubspot", {})
    server_raw = data.get("server", {})
    norm_raw = data.get("normalizer", {})
    return Settings(
        hubspot=HubSpotConfig(
            base_url=hs_raw.get("base_url", DEFAULT_BASE_URL).rstrip("/"),
            timeout_seconds=hs_raw.get("timeout_seconds"),
        ),
        server=ServerConfig(
            host=server_raw.get("host", "127.0.0.1"),
            port=server_raw.get("port", 8000),
        ),
        exclude_default_properties=norm_raw.get("exclude_default_properties", True),
        api_key=api_key_from_env(),
    )


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from ``path``; fall back to defaults when no path is given
    and the default config file does not exist."""
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return Settings(api_key=api_key_from_env())
        path = DEFAULT_CONFIG_PATH
    return load_config(path)
