from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, TextIO

LOG_DIR_ENV = "ARCNAV_LOG_DIR"

_FORMATS = {
    "json": "%(message)s",
    "text": "%(asctime)s %(levelname)s %(name)s %(message)s",
}


def get_logger(name: str = "arcnav") -> logging.Logger:
    return logging.getLogger(name)


def resolve_log_dir(log_dir: Path | None = None) -> Path | None:
    """``ARCNAV_LOG_DIR`` wins over the directory stored in settings."""
    env_dir = os.environ.get(LOG_DIR_ENV, "").strip()
    if env_dir:
        return Path(env_dir).expanduser()
    return log_dir


def configure_logging(
    *,
    level: str = "info",
    format_name: str = "json",
    stream: TextIO | None = None,
    log_dir: Path | None = None,
    filename: str = "arcnav.log",
) -> logging.Handler:
    """Route arcnav logs to ``stream``, a log file, or nowhere.

    The terminal belongs to the UI, so without a stream or a log directory
    records are dropped by a ``NullHandler``.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.strip().upper(), logging.INFO))

    handler: logging.Handler
    if stream is not None:
        handler = logging.StreamHandler(stream)
    else:
        target = resolve_log_dir(log_dir)
        if target is None:
            handler = logging.NullHandler()
        else:
            target.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(target / filename, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FORMATS.get(format_name, _FORMATS["text"])))
    handler.set_name("arcnav")

    for existing in list(root.handlers):
        if existing.get_name() == "arcnav":
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    return handler


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    # One JSON object per line; keys sorted so log lines diff cleanly.
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))
