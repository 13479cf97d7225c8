from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "interactions.yml"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787
DEFAULT_LOG_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_BACKUP_COUNT = 3

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


@dataclasses.dataclass(frozen=True)
class LogConfig:
    path: Optional[Path] = None
    level: int = logging.INFO
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT


@dataclasses.dataclass(frozen=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    access_log: bool = False


@dataclasses.dataclass(frozen=True)
class InteractionsConfig:
    root: Path
    server: ServerConfig
    log: LogConfig
    raw: Dict[str, Any]


def load_dotenv_for_root(root: Path) -> None:
    """Best-effort load of ``.env`` from the config root."""
    try:
        candidate = root.resolve() / ".env"
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)
    except OSError as exc:
        logger.debug("Failed to load .env file: %s", exc)


def _load_yaml_dict(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except Exception as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _parse_port(value: Any) -> int:
    if value is None:
        return DEFAULT_PORT
    if isinstance(value, bool):
        raise ConfigError("server.port must be an integer")
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError("server.port must be an integer") from exc
    if not 0 < port < 65536:
        raise ConfigError("server.port must be between 1 and 65535")
    return port


def _parse_log_level(value: Any) -> int:
    if value is None:
        return logging.INFO
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    name = str(value).strip().lower()
    if name not in _LOG_LEVELS:
        raise ConfigError(f"log.level must be one of {sorted(_LOG_LEVELS)}")
    return getattr(logging, name.upper())


def _build_server_config(raw: Any) -> ServerConfig:
    cfg = raw if isinstance(raw, dict) else {}
    host = str(cfg.get("host", DEFAULT_HOST)).strip() or DEFAULT_HOST
    return ServerConfig(
        host=host,
        port=_parse_port(cfg.get("port")),
        access_log=bool(cfg.get("access_log", False)),
    )


def _build_log_config(raw: Any, *, root: Path) -> LogConfig:
    cfg = raw if isinstance(raw, dict) else {}
    path_value = cfg.get("path")
    path: Optional[Path] = None
    if path_value is not None:
        if not isinstance(path_value, str) or not path_value.strip():
            raise ConfigError("log.path must be a string path")
        path = (root / path_value).resolve()
    max_bytes = cfg.get("max_bytes", DEFAULT_LOG_MAX_BYTES)
    backup_count = cfg.get("backup_count", DEFAULT_LOG_BACKUP_COUNT)
    if not isinstance(max_bytes, int) or max_bytes <= 0:
        raise ConfigError("log.max_bytes must be a positive integer")
    if not isinstance(backup_count, int) or backup_count < 0:
        raise ConfigError("log.backup_count must be a non-negative integer")
    return LogConfig(
        path=path,
        level=_parse_log_level(cfg.get("level")),
        max_bytes=max_bytes,
        backup_count=backup_count,
    )


def load_config(path: Optional[Path] = None) -> InteractionsConfig:
    """Load ``interactions.yml`` (if present) and the sibling ``.env``.

    ``path`` may point at the YAML file itself or at the directory holding it.
    A missing file yields the defaults.
    """
    target = (path or Path.cwd()).resolve()
    config_path = target if target.suffix in (".yml", ".yaml") else target / CONFIG_FILENAME
    root = config_path.parent
    load_dotenv_for_root(root)
    data = _load_yaml_dict(config_path)
    return InteractionsConfig(
        root=root,
        server=_build_server_config(data.get("server")),
        log=_build_log_config(data.get("log"), root=root),
        raw=data,
    )
