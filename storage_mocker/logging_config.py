# logging_config.py
import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory


def configure_logging(log_level: str = "INFO", pretty: bool = False) -> None:
    """
    Configure structured logging.

    The stdlib handler is reset on every call so the level and stream follow the
    current invocation. The structlog processor chain, renderer included, is set
    up once per process.
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
        stream=sys.stderr,  # stdout carries command output
        force=True,
    )
    # Check if already configured
    if structlog.is_configured():
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer() if pretty else structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.get_logger().debug("Logging configured", log_level=log_level, pretty=pretty)
