"""
Structured logging for layerslicer.

Built on structlog. Library modules only ever call ``get_logger(__name__)``
and emit event-style records with key/value context; the host application
(the CLI, or whatever embeds the slicer) decides how records are rendered by
calling ``configure_logging`` once. Records from third-party libraries that
use stdlib logging (trimesh, for one) go through the same renderer.

Usage::

    from layerslicer.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG")
    logger = get_logger(__name__)
    logger.info("mesh_sliced", layers=100, empty_layers=0)
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import Processor

# Context added to every record, whether it came from structlog or stdlib logging.
_CONTEXT_PROCESSORS: List[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _render_chain(json_output: bool) -> List[Processor]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def _install_handlers(formatter: logging.Formatter, level: int, log_file: Optional[str]) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    targets: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        targets.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in targets:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Route structlog and stdlib logging through one set of handlers.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render JSON lines instead of the colored console format.
        log_file: Optional path that receives the same records as stderr.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_CONTEXT_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_chain(json_output),
        ],
    )
    _install_handlers(formatter, numeric_level, log_file)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_CONTEXT_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_run_context(**values: Any) -> None:
    """Attach key/value context (e.g. ``run_id``) to every record of this run."""
    structlog.contextvars.clear_contextvars()
    if values:
        structlog.contextvars.bind_contextvars(**values)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
