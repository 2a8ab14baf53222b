"""Logging configuration for the service process."""
from __future__ import annotations

import logging

from .settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """Apply the configured level to the package logger and attach one stream handler."""

    package_logger = logging.getLogger("vendor_ledger")
    package_logger.setLevel(settings.log_level)
    if not any(getattr(handler, "_vendor_ledger", False) for handler in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._vendor_ledger = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)
