"""
Module: logger.py
Description: Structured loggers owned by the SDK.

The SDK never calls structlog.configure(): a host application's logging
setup stays exactly as it was after importing mindlytics. Each component
instead wraps its own WriteLogger with a fixed JSON processor chain and a
level filter chosen by its debug flag, so debug events cost nothing
unless a component was created with debug enabled.

Key Components:
- get_logger(): JSON logger for one SDK component

Dependencies: structlog, logging (level constants)
Author: Mindlytics SDK Team
"""

import logging
from typing import Any, Optional, TextIO

import structlog

# Level used when debug is off; warnings and errors are still written
QUIET_LEVEL = logging.WARNING

_PROCESSORS = [
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.format_exc_info,
    structlog.processors.JSONRenderer(),
]


def get_logger(
    name: str,
    debug: bool = False,
    file: Optional[TextIO] = None,
    **context: Any
) -> Any:
    """
    Build a JSON logger for an SDK component.

    Args:
        name: Logger name (typically __name__), added to every event
        debug: Emit debug events; otherwise only warnings and above
        file: Output stream, defaults to the current sys.stdout
        **context: Key/value pairs bound to every event

    Returns:
        structlog bound logger with a level filter

    Example:
        >>> logger = get_logger(__name__, debug=True, component="EventQueue")
        >>> logger.debug("Item enqueued", path="/bc/v1/events/event/track")
        {"logger_name": "mindlytics.delivery.queue", "component": "EventQueue", "path": "/bc/v1/events/event/track", "event": "Item enqueued", "level": "debug", "timestamp": "2024-01-15T10:30:00.000000Z"}
    """
    return structlog.wrap_logger(
        structlog.WriteLogger(file),
        processors=_PROCESSORS,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else QUIET_LEVEL
        ),
        logger_name=name,
        **context
    )
