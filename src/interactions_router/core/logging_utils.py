from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from .config import LogConfig

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: Optional[BaseException] = None,
    **fields: Any,
) -> None:
    """Emit one structured log line: ``{"event": ..., **fields}`` as JSON."""
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        if value is not None:
            payload[key] = value
    if exc is not None:
        payload["error"] = str(exc)
        payload["error_type"] = type(exc).__name__
    message = json.dumps(payload, default=_json_default, sort_keys=False)
    logger.log(level, message, exc_info=exc if level >= logging.ERROR else None)


def setup_rotating_logger(name: str, log_config: LogConfig) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(log_config.level)
    # Repeated setup (tests, reloads) must not stack handlers.
    if getattr(logger, "_interactions_router_configured", False):
        return logger

    formatter = logging.Formatter(_LOG_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_config.path is not None:
        log_config.path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_config.path,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger._interactions_router_configured = True  # type: ignore[attr-defined]
    return logger
