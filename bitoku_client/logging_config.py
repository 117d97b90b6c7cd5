"""
Logging for the Bitoku client and the ``bitoku`` command line.

Module loggers are plain ``logging.getLogger(__name__)`` loggers; this module
routes them through structlog so every line carries the cluster and program
being talked to, plus whatever ``BitokuClient.execute`` binds for the
operation in flight (``operation``, ``caller``).
"""

import logging
import sys
from typing import Optional

import structlog

from .config import Settings, settings


def setup_logging(
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    config: Optional[Settings] = None,
) -> None:
    """Configure structlog over the standard library.

    Args:
        log_level: Override log level (default: from settings.log_level)
        json_logs: Emit JSON lines. Defaults to JSON unless stderr is a terminal.
        config: Settings whose cluster and program are bound to every line
    """
    config = config or settings
    level = getattr(logging, (log_level or config.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stdout is reserved for command output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Per-request RPC chatter is logged by solana_rpc at DEBUG already
    for name in ("httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.bind_contextvars(
        rpc_url=config.rpc_url,
        program_id=config.program_id,
    )
