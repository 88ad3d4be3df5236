"""Structured logging helpers shared by every component."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges a default component into per-call extras."""

    def process(self, msg, kwargs):
        # Per-call extra wins over the adapter defaults
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger that tags every record with ``component``.

    Args:
        name: Logger name (typically __name__)
        component: Optional component identifier, e.g. "ingestion" or "scoring"

    Returns:
        Plain logger when no component is given, otherwise a ComponentLoggerAdapter

    Example:
        >>> logger = get_logger(__name__, component="ingestion")
        >>> logger.info("Ingestion started", extra={"event": "ingestion.run.started"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger
