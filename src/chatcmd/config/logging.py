"""structlog setup shared by the CLI and embedding applications.

Library modules log through ``logging.getLogger(__name__)``; this module
routes those records through structlog so they come out either as console
lines or as JSON objects on stderr. While a line is being dispatched, the
caller's name and the message source are bound as context variables and
appear on every record emitted for it.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog

# Third-party loggers that stay at WARNING even in verbose mode.
QUIET_LOGGERS = ("pluggy",)


def _processors(log_json: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_json:
        processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.processors.UnicodeDecoder())
    return processors


def build_handler(*, log_json: bool = False, stream: IO[str] | None = None) -> logging.Handler:
    """A stream handler rendering stdlib records through structlog."""
    stream = stream or sys.stderr
    renderer: structlog.types.Processor
    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_processors(log_json),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Install a single structlog-backed handler on the root logger.

    Args:
        verbose: Show ``chatcmd`` DEBUG records. Otherwise WARNING and up.
        log_json: One JSON object per record instead of console lines.
        stream: Where records go. Defaults to stderr.
    """
    structlog.configure(
        processors=[
            *_processors(log_json),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(build_handler(log_json=log_json, stream=stream))
    root.setLevel(logging.WARNING)

    logging.getLogger("chatcmd").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def dispatch_log_context(context: Any) -> Iterator[None]:
    """Bind the caller of *context* to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(
        author=str(getattr(context, "author", "")),
        private=bool(getattr(context, "is_private", False)),
    ):
        yield
