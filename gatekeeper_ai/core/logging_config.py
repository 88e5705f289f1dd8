"""
Logging setup for Gatekeeper-AI.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records go. ``setup_logging`` is called once by the
service factory (never at import time) and installs:

- one console handler at the configured level,
- an optional ``gatekeeper_ai.log`` file handler (``ENABLE_FILE_LOGGING``),
- per-module levels so pipeline, approval and sandbox noise can be tuned
  separately from third-party libraries.

Environment:
    GATEKEEPER_AI_LOG_LEVEL (through ``Settings``), LOG_FORMAT
    (simple | detailed | json), LOG_FILE_DIR, ENABLE_FILE_LOGGING.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

_TRUTHY = ("true", "1", "yes")
LOG_FILE_NAME = "gatekeeper_ai.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LoggingOptions:
    log_level: str
    log_format: str
    log_file_dir: str
    enable_file_logging: bool


def load_logging_options() -> LoggingOptions:
    """Read logging options from ``Settings`` and the environment.

    ``Settings`` is imported lazily; when it cannot be built (for instance a
    malformed ``.env``) the level comes straight from the environment.
    """
    try:
        from gatekeeper_ai.core.config import settings

        level = settings.log_level
    except Exception:
        level = os.getenv("GATEKEEPER_AI_LOG_LEVEL", "INFO")
    return LoggingOptions(
        log_level=level.upper(),
        log_format=os.getenv("LOG_FORMAT", "detailed"),
        log_file_dir=os.getenv("LOG_FILE_DIR", "logs"),
        enable_file_logging=os.getenv("ENABLE_FILE_LOGGING", "false").lower() in _TRUTHY,
    )


_options = load_logging_options()
LOG_LEVEL = _options.log_level
LOG_FORMAT = _options.log_format
LOG_FILE_DIR = _options.log_file_dir
ENABLE_FILE_LOGGING = _options.enable_file_logging


SIMPLE_FORMAT = "%(levelname)-8s %(name)s: %(message)s"

DETAILED_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(filename)s:%(lineno)d %(funcName)s() | %(message)s"

JSON_FORMAT = (
    '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"where": "%(filename)s:%(lineno)d", "msg": "%(message)s"}'
)

_FORMATS: Dict[str, str] = {"simple": SIMPLE_FORMAT, "detailed": DETAILED_FORMAT, "json": JSON_FORMAT}


MODULE_LOG_LEVELS: Dict[str, str] = {
    "gatekeeper_ai.agent_core": "DEBUG",
    "gatekeeper_ai.agent_core.runtime": "DEBUG",
    "gatekeeper_ai.agent_core.planning": "DEBUG",
    "gatekeeper_ai.agent_core.approvals": "DEBUG",
    "gatekeeper_ai.agent_core.sandbox": "DEBUG",
    "gatekeeper_ai.agent_core.tools": "DEBUG",
    "gatekeeper_ai.agent_core.checkpoints": "INFO",
    "gatekeeper_ai.agent_core.repos": "INFO",
    # third party
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "aiosqlite": "WARNING",
    "httpx": "WARNING",
    "asyncio": "WARNING",
}


def resolve_format(log_format: Optional[str]) -> str:
    """Format string for ``simple``/``detailed``/``json``; unknown names get ``detailed``."""
    return _FORMATS.get((log_format or LOG_FORMAT).lower(), DETAILED_FORMAT)


def _build_handlers(level: str, formatter: logging.Formatter, to_file: bool) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]
    if to_file:
        log_dir = Path(LOG_FILE_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: bool = True,
) -> None:
    """
    Replace the root logger's handlers with the Gatekeeper-AI ones.

    Args:
        log_level: Console level; defaults to ``GATEKEEPER_AI_LOG_LEVEL``.
        log_format: ``simple``, ``detailed`` or ``json``; defaults to ``LOG_FORMAT``.
        enable_file: Allow the file handler. It is only installed when
            ``ENABLE_FILE_LOGGING`` is also set.
    """
    level = (log_level or LOG_LEVEL).upper()
    to_file = enable_file and ENABLE_FILE_LOGGING
    formatter = logging.Formatter(resolve_format(log_format), datefmt=DATE_FORMAT)

    root = logging.getLogger()
    # The root passes everything; handlers do the filtering
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in _build_handlers(level, formatter, to_file):
        root.addHandler(handler)

    for name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(module_level)

    root.debug("Logging configured (level=%s, format=%s, file=%s)", level, log_format or LOG_FORMAT, to_file)


def get_logger(name: str) -> logging.Logger:
    """Shorthand for ``logging.getLogger(name)``."""
    return logging.getLogger(name)
