"""Loading and validating the proxy's YAML configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from ginx import logger

DEFAULT_CONFIG_PATH = "config/development.yaml"


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is invalid."""


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"server.{key} must be an integer, got {value!r}")
    return value


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"server.{key} must be a string, got {value!r}")
    return str(value)


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"server.{key} must be a list, got {value!r}")
    items = []
    for item in value:
        if isinstance(item, (dict, list)) or item is None:
            raise ConfigError(f"server.{key} entries must be strings, got {item!r}")
        items.append(str(item))
    return items


@dataclass
class ServerSettings:
    address: str = ""
    port: int = 0
    async_method: str = ""
    load_balancer: str = ""
    upstream_servers: list[str] = field(default_factory=list)
    max_open_files: int = 0


@dataclass
class ServerConfig:
    server: ServerSettings = field(default_factory=ServerSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ServerConfig":
        """Build a configuration from parsed YAML, checking field types."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a mapping")
        section = data.get("server")
        if section is None:
            return cls()
        if not isinstance(section, Mapping):
            raise ConfigError("server must be a mapping")
        return cls(
            ServerSettings(
                address=_str(section, "address"),
                port=_int(section, "port"),
                async_method=_str(section, "async_method"),
                load_balancer=_str(section, "load_balancer"),
                upstream_servers=_str_list(section, "upstream_servers"),
                max_open_files=_int(section, "max_open_files"),
            )
        )


def _validate(cfg: ServerConfig) -> None:
    if cfg.server.port == 0:
        message = "server.port is required"
    elif not cfg.server.upstream_servers:
        message = "at least one upstream server is required"
    elif cfg.server.max_open_files == 0:
        message = "server.max_open_files is required"
    else:
        return
    logger.error(message)
    raise ConfigError(message)


def parse_config(text: str) -> ServerConfig:
    """Parse YAML text into a validated configuration."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config: {exc}") from exc
    cfg = ServerConfig.from_mapping(data)
    _validate(cfg)
    return cfg


def load_config(path: str | os.PathLike[str] | None = None) -> ServerConfig:
    """Load the configuration file.

    A ``.env`` file in the working directory is read first. Without an explicit
    path, ``CONFIG_PATH`` is used, defaulting to ``config/development.yaml``.
    Relative paths are taken from the working directory.
    """
    env_file = Path.cwd() / ".env"
    if not env_file.is_file() or not load_dotenv(dotenv_path=env_file):
        logger.info("No .env file found or error loading .env file", path=str(env_file))

    if path is None:
        path = os.environ.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH
    config_path = Path(path)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_path

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read config file", path=str(config_path), error=exc)
        raise ConfigError(f"failed to read config file {config_path}: {exc}") from exc

    try:
        return parse_config(text)
    except ConfigError as exc:
        logger.error("Failed to load config file", path=str(config_path), error=exc)
        raise