"""
Logger construction.

The server logs through a single ``logging.Logger`` instance that is built
once at startup and handed to every component. The instance is created
directly rather than through ``logging.getLogger`` so building it never
touches the process-wide logging tree.

An optional JSON document (zap-style keys) controls the logger:

{
  "level": "debug",
  "encoding": "json",
  "outputPaths": ["stdout", "/var/log/dumbr.log"],
  "errorOutputPaths": ["stderr"],
  "initialFields": {"service": "dumbr"}
}
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .errors import LogConfigError

LOGGER_NAME = "dumbr"

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

ENCODINGS = ("console", "json")

CONSOLE_FORMAT = "%(asctime)s\t%(levelname)s\t%(module)s:%(lineno)d\t%(message)s"


@dataclass(frozen=True)
class LogConfig:
    """Logger settings. The defaults are the console/info logger used when
    no configuration document is given."""
    level: int = logging.INFO
    encoding: str = "console"
    output_paths: Tuple[str, ...] = ("stdout",)
    error_output_paths: Tuple[str, ...] = ()
    initial_fields: Dict[str, Any] = field(default_factory=dict)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, keyed the way zap's production encoder is."""

    def __init__(self, initial_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.initial_fields = dict(initial_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "level": record.levelname.lower(),
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "logger": record.name,
            "caller": f"{record.module}:{record.lineno}",
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        entry.update(self.initial_fields)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Tab separated human readable lines, with initial fields appended as JSON."""

    def __init__(self, initial_fields: Optional[Dict[str, Any]] = None):
        super().__init__(CONSOLE_FORMAT)
        self.initial_fields = dict(initial_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if self.initial_fields:
            line = f"{line}\t{json.dumps(self.initial_fields, default=str)}"
        return line


def _string_list(raw: Dict[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise LogConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def parse_log_config(raw: Any) -> LogConfig:
    """
    Convert a decoded logging document into a LogConfig.

    Unknown keys are ignored so full zap configurations can be reused as-is.

    Raises:
        LogConfigError: If a known key has an invalid value
    """
    if not isinstance(raw, dict):
        raise LogConfigError("logging configuration must be a JSON object")

    level_name = raw.get("level", "info")
    if not isinstance(level_name, str) or level_name.lower() not in LEVELS:
        raise LogConfigError(f"unknown log level: {level_name!r}")

    encoding = raw.get("encoding", "console")
    if encoding not in ENCODINGS:
        raise LogConfigError(f"unknown log encoding: {encoding!r} (expected one of {', '.join(ENCODINGS)})")

    initial_fields = raw.get("initialFields") or {}
    if not isinstance(initial_fields, dict):
        raise LogConfigError("'initialFields' must be an object")

    return LogConfig(
        level=LEVELS[level_name.lower()],
        encoding=encoding,
        output_paths=_string_list(raw, "outputPaths", ("stdout",)),
        error_output_paths=_string_list(raw, "errorOutputPaths", ()),
        initial_fields=initial_fields,
    )


def load_log_config(path: str) -> LogConfig:
    """
    Read and parse a logging configuration document.

    Raises:
        LogConfigError: If the file cannot be read or is not valid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise LogConfigError(f"cannot read logging configuration {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LogConfigError(f"invalid JSON in logging configuration {path}: {e}") from e
    return parse_log_config(raw)


def _open_handler(target: str) -> logging.Handler:
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        return logging.FileHandler(target, encoding="utf-8")
    except OSError as e:
        raise LogConfigError(f"cannot open log output {target}: {e}") from e


def build_logger(config: Optional[LogConfig] = None, name: str = LOGGER_NAME) -> logging.Logger:
    """
    Build a standalone logger from a LogConfig.

    Args:
        config: Logger settings (defaults to console encoding at INFO on stdout)
        name: Logger name shown in records

    Returns:
        A logger that is not registered with the logging module

    Raises:
        LogConfigError: If an output path cannot be opened
    """
    config = config or LogConfig()
    if config.encoding == "json":
        formatter: logging.Formatter = JsonFormatter(config.initial_fields)
    else:
        formatter = ConsoleFormatter(config.initial_fields)

    logger = logging.Logger(name, level=config.level)
    for target in config.output_paths:
        handler = _open_handler(target)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    for target in config.error_output_paths:
        handler = _open_handler(target)
        handler.setLevel(logging.ERROR)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def logger_from_file(path: Optional[str]) -> logging.Logger:
    """Build the server logger, reading ``path`` when one is given."""
    if not path:
        return build_logger()
    return build_logger(load_log_config(path))
