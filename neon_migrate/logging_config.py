"""
Structured logging setup shared by the CLI and library code.
"""
import logging
import sys
from typing import List, Optional

import structlog

from neon_migrate.config import Settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog on top of the standard logging module."""
    if settings is None:
        from neon_migrate.config import settings as default_settings
        settings = default_settings

    # Configure structured logging
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
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdout is reserved for progress output
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level),
        format='%(message)s',
        handlers=handlers,
        force=True
    )
