"""Server configuration loading."""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from toolhost.lib import oj
from toolhost.utilities.types import LogLevel

logger = logging.getLogger(__name__)

# Config file locations
CONFIG_FILENAME = "config.json"
GLOBAL_CONFIG = Path.home() / ".toolhost" / CONFIG_FILENAME
LOCAL_CONFIG_DIR = ".toolhost"

ENV_PREFIX = "TOOLHOST_"
TRANSPORTS = ("stdio", "http")


@dataclass(frozen=True)
class ServerConfig:
    """Settings for one server process."""

    name: str = "toolhost"
    version: str = "1.0.0"
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 3000
    request_timeout: float = 60.0
    """Seconds to wait for sampling and elicitation answers."""

    page_size: int = 50
    log_level: str = "info"
    """Initial client log level (MCP level name)."""

    forward_logs: bool = True
    """Forward handler log records to clients as notifications/message."""

    session_idle_timeout: float = 1800.0
    """Seconds an HTTP session may go unused before it is closed; 0 disables."""

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(f"transport must be one of {TRANSPORTS}, got {self.transport!r}")
        if not (0 <= self.port <= 65535):
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")
        if self.session_idle_timeout < 0:
            raise ValueError("session_idle_timeout must not be negative")
        LogLevel.from_string(self.log_level)

    def merge(self, data: Mapping[str, Any]) -> "ServerConfig":
        """Return a copy with known keys from `data` applied; others are ignored."""
        known = {f.name for f in fields(self)}
        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            updates[key] = _coerce(getattr(self, key), value)
        return replace(self, **updates) if updates else self


def _coerce(current: Any, value: Any) -> Any:
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return str(value)


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = oj.loads(path.read_bytes())
    except (OSError, oj.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: top level must be an object")
        return {}
    return data


def config_from_env(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """
    Collect TOOLHOST_* variables, plus PORT for hosted environments.

    TOOLHOST_PORT wins over PORT when both are set.
    """
    environ = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    if environ.get("PORT"):
        data["port"] = environ["PORT"]
    for f in fields(ServerConfig):
        value = environ.get(ENV_PREFIX + f.name.upper())
        if value:
            data[f.name] = value
    return data


def load_config(
    working_dir: Path | None = None,
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ServerConfig:
    """
    Load configuration.

    Global config (~/.toolhost/config.json) is loaded first, then local
    config ({working_dir}/.toolhost/config.json), then an explicit
    config file, then the environment. Later sources override earlier
    ones.

    Raises:
        ValueError: If a value has the wrong type or is out of range.
    """
    config = ServerConfig()
    config = config.merge(_read_config_file(GLOBAL_CONFIG))

    if working_dir is not None:
        config = config.merge(_read_config_file(working_dir / LOCAL_CONFIG_DIR / CONFIG_FILENAME))

    if config_file is not None:
        if not config_file.exists():
            raise ValueError(f"Config file not found: {config_file}")
        config = config.merge(_read_config_file(config_file))

    return config.merge(config_from_env(environ))
