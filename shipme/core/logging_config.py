"""
Logging setup.

Every server speaks MCP over stdout, so all diagnostics go to stderr.
structlog renders key/value events through the stdlib handlers configured here.
"""

import logging
import sys
from typing import Any, MutableMapping

import structlog


SENSITIVE_KEYS = ("token", "password", "secret", "key", "authorization")


class ColoredFormatter(logging.Formatter):
    """Colored log formatter"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset_color = self.COLORS['RESET']
        formatted = super().format(record)
        return f"{log_color}{formatted}{reset_color}"


def redact_sensitive(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking values bound under credential-like keys."""
    for name in list(event_dict.keys()):
        if name == "event":
            continue
        lowered = name.lower()
        if any(marker in lowered for marker in SENSITIVE_KEYS) and not lowered.endswith(("_count", "_name", "_names")):
            event_dict[name] = "***"
    return event_dict


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """Configure stdlib logging on stderr and route structlog through it."""

    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    if enable_colors and sys.stderr.isatty():
        formatter = ColoredFormatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')
    else:
        formatter = logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_sensitive,
            structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger(__name__)
    logger.debug("logging_configured", level=level)
