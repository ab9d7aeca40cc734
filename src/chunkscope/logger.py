"""
Logging setup for chunkscope.

Library modules only call :func:`get_logger`; whoever embeds the chunker
decides where output goes through :func:`configure_logging`. structlog is
bridged into the standard logging module so that ``MalformedTreeWarning``
(issued via :mod:`warnings`) and structlog events end up on the same handlers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from structlog.typing import Processor

if TYPE_CHECKING:  # pragma: no cover
    from .settings import AppSettings

_SHARED_PROCESSORS: tuple[Processor, ...] = (
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
)


def _renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(
    level: int = logging.INFO,
    enable_console: bool = True,
    console_level: int | None = None,
    json_output: bool = False,
) -> None:
    """
    Configure structlog and the root logger.

    Parameters
    ----------
    level:
        Minimum level for structlog events and the root logger.
    enable_console:
        When False, a ``NullHandler`` is installed instead of a stream handler.
    console_level:
        Threshold for the stream handler. Defaults to ``level``.
    json_output:
        Render one JSON object per line instead of the console format, for
        indexing jobs whose logs are shipped elsewhere.
    """
    structlog.configure(
        processors=_SHARED_PROCESSORS + (ProcessorFormatter.wrap_for_formatter,),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    logging.captureWarnings(True)

    if enable_console:
        handler: logging.Handler = logging.StreamHandler()
        handler.setLevel(console_level if console_level is not None else level)
        handler.setFormatter(
            ProcessorFormatter(
                processor=_renderer(json_output),
                foreign_pre_chain=_SHARED_PROCESSORS,
            )
        )
    else:
        handler = logging.NullHandler()

    logging.basicConfig(level=level, handlers=[handler], force=True)


def configure_from_settings(app_settings: "AppSettings") -> None:
    """Apply the ``log_level``/``log_json`` values of loaded settings."""
    level = logging.getLevelName(app_settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    configure_logging(level=level, json_output=app_settings.log_json)


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
