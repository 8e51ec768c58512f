"""
Structured logging for deployments.

Every lpkit module logs through the stdlib (`logging.getLogger(__name__)`).
The pipeline binds `pool` and `operation` for a deploy or withdraw, and the
coordinator binds `bundle_id` while it polls. Those keys are merged into each
line and placed right after the event so one bundle's lines read together.
JSON lines in production, console output at DEBUG.
"""

import logging
import sys
from typing import Any, List, MutableMapping, Optional, TextIO

import structlog

from .config import settings


# Bound by LiquidityDeployer and BundleCoordinator, in render order
CONTEXT_KEYS = ("pool", "operation", "bundle_id")

QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "hpack")


def front_load_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Reorder an event so the deployment context follows the event text."""
    ordered = {"event": event_dict.pop("event", "")}
    for key in CONTEXT_KEYS:
        if key in event_dict:
            ordered[key] = event_dict.pop(key)
    ordered.update(event_dict)
    return ordered


def build_processors(is_dev: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if not is_dev:
        processors.append(structlog.processors.format_exc_info)
    processors.append(front_load_context)
    return processors


def setup_logging(log_level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Route stdlib and structlog output through one formatter.

    Args:
        log_level: Override log level (default: from settings.log_level)
        stream: Where log lines go (default: stdout). The CLI passes stderr so
            its '--json' output stays parseable.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    is_dev = level == logging.DEBUG
    pre_chain = build_processors(is_dev)

    if is_dev:
        renderer = structlog.dev.ConsoleRenderer(sort_keys=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Providers log their own quote and RPC traffic
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
