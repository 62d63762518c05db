"""
Logging utilities for the mailbox linker service and its scripts.
"""

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the service-wide format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # Outbound request lines would otherwise echo every Google API call.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
