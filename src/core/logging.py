"""Log output for the relay.

Every record leaves the process as one line on stderr, so the service
manager's journal captures it. Events logged through structlog and
records emitted by aiohttp and httpx on the stdlib ``logging`` tree share
one processor chain, which gives them the same timestamp, level and
logger fields in either output format.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from src.core.config import get_settings

# Per-request chatter from the HTTP stacks, only wanted when debugging.
_NOISY_LOGGERS = ("aiohttp.access", "httpx", "httpcore")

_FORMATS = ("json", "console")


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _renderer(fmt: str, stream: TextIO) -> structlog.types.Processor:
    if fmt not in _FORMATS:
        raise ValueError(f"unknown log format '{fmt}', expected one of {', '.join(_FORMATS)}")
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def _quiet_third_party(level: int) -> None:
    quiet = logging.WARNING if level > logging.DEBUG else logging.NOTSET
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib records to a single stderr handler.

    *level* and *fmt* fall back to the ``logging`` section of the settings.
    Raises ``ValueError`` for a format other than ``json`` or ``console``.
    """
    settings = get_settings()
    log_level = _parse_level(level or settings.logging.level)
    out = stream or sys.stderr
    renderer = _renderer(fmt or settings.logging.format, out)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(out)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
    _quiet_third_party(log_level)
