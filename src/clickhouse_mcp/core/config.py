"""Configuration management for clickhouse-mcp.

Handles the TOML config file, environment variables, and configuration
precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--url, --database, etc.)
2. Environment variables (CLICKHOUSE_URL, CLICKHOUSE_DATABASE, ...)
3. Config file values
4. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ValidationError, field_validator

from clickhouse_mcp.core.exceptions import ConfigError
from clickhouse_mcp.core.retry import RetryPolicy

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "clickhouse-mcp" / "config.toml"

_DEFAULT_PORTS: dict[str, int] = {"http": 8123, "https": 8443}

# env var -> (field name, converter)
_CH_ENV_VARS: dict[str, tuple[str, type]] = {
    "CLICKHOUSE_URL": ("url", str),
    "CLICKHOUSE_DATABASE": ("database", str),
    "CLICKHOUSE_USERNAME": ("username", str),
    "CLICKHOUSE_PASSWORD": ("password", str),  # pragma: allowlist secret
    "CLICKHOUSE_MAX_RETRIES": ("max_retries", int),
    "CLICKHOUSE_RETRY_BASE_DELAY": ("retry_base_delay", float),
}

_DEFAULTS: dict[str, Any] = {
    "url": "http://localhost:8123",
    "database": "default",
    "username": "default",
    "password": "",
    "connect_timeout": 10,
    "query_timeout": 30.0,
    "max_retries": 3,
    "retry_base_delay": 0.1,
}


def parse_url(url: str) -> dict[str, Any]:
    """Split an http(s):// server URL into host, port and TLS flag."""
    parsed = urlparse(url)
    if parsed.scheme not in _DEFAULT_PORTS:
        msg = f"Invalid URL scheme: '{parsed.scheme}'. Expected 'http' or 'https'"
        raise ConfigError(msg)
    if not parsed.hostname:
        msg = f"Invalid URL: '{url}' has no host"
        raise ConfigError(msg)
    try:
        port = parsed.port or _DEFAULT_PORTS[parsed.scheme]
    except ValueError as e:
        msg = f"Invalid URL port in '{url}': {e}"
        raise ConfigError(msg) from e
    return {
        "host": parsed.hostname,
        "port": port,
        "secure": parsed.scheme == "https",
    }


class ServerSettings(BaseModel):
    url: str = _DEFAULTS["url"]
    database: str = _DEFAULTS["database"]
    username: str = _DEFAULTS["username"]
    password: str = _DEFAULTS["password"]
    connect_timeout: int = _DEFAULTS["connect_timeout"]
    query_timeout: float = _DEFAULTS["query_timeout"]
    max_retries: int = _DEFAULTS["max_retries"]
    retry_base_delay: float = _DEFAULTS["retry_base_delay"]

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        try:
            parse_url(v)
        except ConfigError as e:
            raise ValueError(e.message) from None
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            msg = f"Invalid max_retries: {v}. Must be >= 0"
            raise ValueError(msg)
        return v

    @field_validator("retry_base_delay", "query_timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            msg = f"Invalid duration: {v}. Must be >= 0"
            raise ValueError(msg)
        return v


class AppConfig(BaseModel):
    """Contents of the TOML config file (a ``[clickhouse]`` table)."""

    clickhouse: ServerSettings = ServerSettings()


class ResolvedConfig(ServerSettings):
    sources: dict[str, str] = {}

    @property
    def host(self) -> str:
        return parse_url(self.url)["host"]

    @property
    def port(self) -> int:
        return parse_url(self.url)["port"]

    @property
    def secure(self) -> bool:
        return parse_url(self.url)["secure"]

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries, base_delay=self.retry_base_delay
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(config: AppConfig, **cli_overrides: Any) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > env > config file > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_DEFAULTS)
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file
    for key in config.clickhouse.model_fields_set:
        resolved[key] = getattr(config.clickhouse, key)
        sources[key] = "config"

    # Layer 3: Environment variables
    for env_var, (field_name, convert) in _CH_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        try:
            resolved[field_name] = convert(value)
        except ValueError:
            msg = f"Invalid {env_var} value: '{value}'. Must be {convert.__name__}"
            raise ConfigError(msg) from None
        sources[field_name] = f"env: {env_var}"

    # Layer 4: CLI flags (highest priority)
    cli_to_field = {
        "url": "url",
        "database": "database",
        "user": "username",
        "password": "password",  # pragma: allowlist secret
        "timeout": "query_timeout",
        "max_retries": "max_retries",
        "retry_delay": "retry_base_delay",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name.replace('_', '-')}"

    resolved["sources"] = sources
    try:
        return ResolvedConfig(**resolved)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e
